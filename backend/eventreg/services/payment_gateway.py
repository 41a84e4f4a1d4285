"""
Stripe payment gateway client.

PAYMENT FLOW
============

1. The browser asks for a PaymentIntent as soon as the checkout page loads,
   possibly before the registration exists. We return its client secret.
2. Once the registration id is known it is written into the intent's
   metadata (at creation, or later via link_registration).
3. The browser confirms the payment directly with Stripe.
4. Stripe calls our webhook; metadata.registrationId ties the event back
   to the registration.

Client lifecycle:
  One PaymentGateway per process, keyed by STRIPE_SECRET_KEY. If the key
  changes (rotation), the next get_payment_gateway() builds a fresh one, so a
  stale credential is never reused silently. reset_payment_gateway() drops it.

The stripe SDK is blocking; calls run in the default executor. The SDK's own
network timeout applies and no retries are layered on top.

Error mapping:
  - InvalidRequestError / CardError -> GatewayError 400 (caller's fault)
  - AuthenticationError / PermissionError -> ConfigurationError 500 (bad key)
  - any other StripeError -> GatewayError 502
"""

import asyncio
import functools
import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import stripe
from fastapi import status

from eventreg.core import metrics
from eventreg.core.config import get_settings
from eventreg.core.errors import ConfigurationError, GatewayError, SignatureError, ValidationError
from eventreg.core.logging import get_logger

logger = get_logger(__name__)

CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")
# Stripe rejects amounts above eight digits in the smallest currency unit
MAX_MINOR_UNITS = 99_999_999


@dataclass
class PaymentIntentResult:
    client_secret: str
    payment_intent_id: str


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)


def to_minor_units(amount: Any) -> int:
    """Major units (e.g. dollars) to minor units (cents), rejecting non-positive amounts."""
    invalid = ValidationError(
        "Amount is required and must be a positive number",
        code="INVALID_AMOUNT",
        details=[{"field": "amount", "message": "must be a number greater than 0"}],
    )
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise invalid
    if isinstance(amount, float) and not math.isfinite(amount):
        raise invalid
    if amount <= 0:
        raise invalid

    try:
        minor = round(amount * 100)
    except OverflowError:
        # float amounts near the top of the float range overflow to inf
        minor = None

    if minor is None or minor > MAX_MINOR_UNITS:
        raise ValidationError(
            "Amount exceeds the maximum chargeable amount",
            code="INVALID_AMOUNT",
            details=[{"field": "amount", "message": f"must be at most {MAX_MINOR_UNITS / 100:.2f}"}],
        )
    if minor < 1:
        raise ValidationError(
            "Amount is below the smallest chargeable unit",
            code="INVALID_AMOUNT",
            details=[{"field": "amount", "message": "must be at least 0.01"}],
        )
    return minor


def normalize_currency(currency: Any) -> str:
    if currency is None:
        currency = get_settings().DEFAULT_CURRENCY
    if not isinstance(currency, str) or not CURRENCY_PATTERN.match(currency):
        raise ValidationError(
            'Currency must be a valid 3-letter currency code (e.g., "usd")',
            code="INVALID_CURRENCY",
            details=[{"field": "currency", "message": "must be exactly 3 letters"}],
        )
    return currency.lower()


def build_metadata(metadata: Optional[dict[str, Any]], registration_id: Optional[int]) -> dict[str, str]:
    # Stripe metadata values are strings
    payment_metadata = {str(k): str(v) for k, v in (metadata or {}).items() if v is not None}
    if registration_id:
        payment_metadata["registrationId"] = str(registration_id)
    return payment_metadata


def _metadata_dict(obj: Any) -> dict[str, str]:
    if not obj:
        return {}
    return {key: str(obj[key]) for key in obj.keys()}


def verify_webhook_signature(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance: Optional[int] = None,
) -> dict:
    """
    Check a webhook payload against its `stripe-signature` header and return
    the decoded event. The signature covers the exact raw bytes, so the body
    must not be re-serialized before calling this.
    """
    if tolerance is None:
        tolerance = get_settings().STRIPE_WEBHOOK_TOLERANCE
    try:
        text = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(text, signature_header, secret, tolerance)
        event = json.loads(text)
    except stripe.SignatureVerificationError as e:
        raise SignatureError(f"Webhook Error: {e.user_message or e}") from e
    except ValueError as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise SignatureError("Webhook Error: invalid payload") from e

    if not isinstance(event, dict) or "type" not in event:
        raise SignatureError("Webhook Error: invalid payload")
    return event


class PaymentGateway:
    def __init__(self, api_key: str):
        if not api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
        self.api_key = api_key

    async def _call(self, operation: str, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, api_key=self.api_key, **kwargs))
        except (stripe.InvalidRequestError, stripe.CardError) as e:
            logger.warning("stripe_request_invalid", operation=operation, error=str(e))
            raise GatewayError(
                e.user_message or "Invalid payment request",
                code="INVALID_PAYMENT_REQUEST",
                status_code=status.HTTP_400_BAD_REQUEST,
            ) from e
        except (stripe.AuthenticationError, stripe.PermissionError) as e:
            logger.error("stripe_credentials_rejected", operation=operation, error=str(e))
            raise ConfigurationError("Payment provider credentials were rejected") from e
        except stripe.StripeError as e:
            logger.error("stripe_request_failed", operation=operation, error=str(e))
            raise GatewayError() from e

    async def create_payment_intent(
        self,
        amount: Any,
        currency: Any = None,
        metadata: Optional[dict[str, Any]] = None,
        registration_id: Optional[int] = None,
    ) -> PaymentIntentResult:
        try:
            minor_units = to_minor_units(amount)
            currency_code = normalize_currency(currency)
        except ValidationError:
            metrics.payment_intents.labels(result="rejected").inc()
            raise

        try:
            intent = await self._call(
                "create_payment_intent",
                stripe.PaymentIntent.create,
                amount=minor_units,
                currency=currency_code,
                metadata=build_metadata(metadata, registration_id),
                automatic_payment_methods={"enabled": True},
            )
        except Exception:
            metrics.payment_intents.labels(result="error").inc()
            raise

        metrics.payment_intents.labels(result="created").inc()
        logger.info(
            "payment_intent_created",
            payment_intent_id=intent.id,
            amount=minor_units,
            currency=currency_code,
            registration_id=registration_id,
        )
        return PaymentIntentResult(client_secret=intent.client_secret, payment_intent_id=intent.id)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        intent = await self._call("retrieve_payment_intent", stripe.PaymentIntent.retrieve, payment_intent_id)
        return PaymentIntentInfo(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            metadata=_metadata_dict(intent.metadata),
        )

    async def link_registration(self, payment_intent_id: str, registration_id: int) -> None:
        """Attach a registration id to an intent created before the registration existed."""
        await self._call(
            "link_registration",
            stripe.PaymentIntent.modify,
            payment_intent_id,
            metadata={"registrationId": str(registration_id)},
        )
        logger.info("payment_intent_linked", payment_intent_id=payment_intent_id, registration_id=registration_id)


_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """Return the process-wide gateway, rebuilding it if the secret key changed."""
    global _gateway
    api_key = get_settings().STRIPE_SECRET_KEY
    if not api_key:
        raise ConfigurationError("STRIPE_SECRET_KEY is not configured")

    if _gateway is None or _gateway.api_key != api_key:
        if _gateway is not None:
            logger.info("payment_gateway_rebuilt", reason="secret_key_changed")
        _gateway = PaymentGateway(api_key)
    return _gateway


def reset_payment_gateway() -> None:
    global _gateway
    _gateway = None
