"""
Stripe webhook processing.

Protocol:
  1. No `stripe-signature` header           -> 400, nothing else happens
  2. No STRIPE_WEBHOOK_SECRET configured     -> 500 (deployment fault)
  3. Signature does not match the raw body   -> 400, payload is not dispatched
  4. Dispatch by event type
  5. Acknowledge with {received: true} once the signature checked out, even if
     dispatch failed. A non-2xx makes Stripe redeliver the event repeatedly;
     failures are logged and counted instead.

Stripe may deliver the same event more than once. The only mutation is a
blind set of status=paid, so redelivery is harmless.
"""

from typing import Any, Awaitable, Callable, Optional

from eventreg.core import metrics
from eventreg.core.errors import ConfigurationError, SignatureError
from eventreg.core.logging import get_logger
from eventreg.services.payment_gateway import verify_webhook_signature
from eventreg.services.registration_service import RegistrationService

logger = get_logger(__name__)

SignatureVerifier = Callable[[bytes, str, str], dict]


def parse_registration_id(metadata: Optional[dict]) -> Optional[int]:
    """Registration id from PaymentIntent metadata, or None if absent or malformed."""
    raw = (metadata or {}).get("registrationId")
    if raw is None or raw == "":
        return None
    try:
        registration_id = int(str(raw).strip())
    except ValueError:
        return None
    return registration_id if registration_id > 0 else None


class WebhookService:
    def __init__(
        self,
        registrations: RegistrationService,
        secret: str,
        verifier: SignatureVerifier = verify_webhook_signature,
    ):
        self.registrations = registrations
        self.secret = secret
        self._verify = verifier
        self._handlers: dict[str, Callable[[dict], Awaitable[str]]] = {
            "payment_intent.succeeded": self._on_payment_succeeded,
            "payment_intent.processing": self._on_payment_processing,
            "payment_intent.payment_failed": self._on_payment_failed,
        }

    async def handle(self, payload: bytes, signature: Optional[str]) -> dict:
        if not signature:
            logger.warning("webhook_signature_missing")
            metrics.webhook_events.labels(event_type="unknown", outcome="rejected").inc()
            raise SignatureError("Missing Stripe signature", code="MISSING_SIGNATURE")

        if not self.secret:
            logger.error("webhook_secret_missing", setting="STRIPE_WEBHOOK_SECRET")
            raise ConfigurationError("Webhook secret not configured")

        try:
            event = self._verify(payload, signature, self.secret)
        except SignatureError as e:
            logger.warning("webhook_signature_invalid", error=e.message)
            metrics.webhook_events.labels(event_type="unknown", outcome="rejected").inc()
            raise

        event_type = event.get("type", "unknown")
        try:
            outcome = await self.dispatch(event)
        except Exception:
            logger.exception("webhook_processing_failed", event_id=event.get("id"), event_type=event_type)
            outcome = "error"

        metrics.webhook_events.labels(event_type=event_type, outcome=outcome).inc()
        return {"received": True}

    async def dispatch(self, event: dict) -> str:
        event_type = event.get("type")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("webhook_event_ignored", event_id=event.get("id"), event_type=event_type)
            return "ignored"

        payment_intent = (event.get("data") or {}).get("object") or {}
        return await handler(payment_intent)

    async def _on_payment_succeeded(self, payment_intent: dict) -> str:
        registration_id = self._registration_id(payment_intent)
        if registration_id is None:
            return "skipped"

        await self.registrations.mark_paid(registration_id)
        logger.info(
            "registration_paid_via_webhook",
            payment_intent_id=payment_intent.get("id"),
            registration_id=registration_id,
        )
        return "processed"

    async def _on_payment_processing(self, payment_intent: dict) -> str:
        registration_id = self._registration_id(payment_intent)
        logger.info(
            "payment_processing",
            payment_intent_id=payment_intent.get("id"),
            registration_id=registration_id,
        )
        return "processed" if registration_id is not None else "skipped"

    async def _on_payment_failed(self, payment_intent: dict) -> str:
        # Registration stays pending so the visitor can retry
        registration_id = self._registration_id(payment_intent)
        error = payment_intent.get("last_payment_error") or {}
        logger.info(
            "payment_failed",
            payment_intent_id=payment_intent.get("id"),
            registration_id=registration_id,
            reason=error.get("message"),
        )
        return "processed" if registration_id is not None else "skipped"

    @staticmethod
    def _registration_id(payment_intent: dict[str, Any]) -> Optional[int]:
        metadata = payment_intent.get("metadata") or {}
        registration_id = parse_registration_id(metadata)
        if registration_id is None:
            if metadata.get("registrationId") in (None, ""):
                logger.warning("webhook_missing_registration_id", payment_intent_id=payment_intent.get("id"))
            else:
                logger.error(
                    "webhook_invalid_registration_id",
                    payment_intent_id=payment_intent.get("id"),
                    value=metadata.get("registrationId"),
                )
        return registration_id
