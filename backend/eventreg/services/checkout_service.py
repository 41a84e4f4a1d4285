"""
Checkout orchestration.

PAYMENT LIFECYCLE OF A REGISTRATION
===================================

  CREATED (status=pending)
     |  client fetches a PaymentIntent (no persisted change)
  PAYMENT_INITIATED
     |  payment_intent.processing / payment_intent.payment_failed
     |  leave the registration pending so the visitor can retry
     v
  PAID (status=paid, terminal)

Registration creation and PaymentIntent creation are independent requests:
the payment form initializes on page load while the visitor is still typing,
and the registration id is attached to the intent when it becomes known.

Authoritative writer:
  With STRIPE_WEBHOOK_SECRET configured, only the webhook marks a
  registration paid and confirm() is a read. Without it, confirm() trusts
  the client and marks the registration paid unconditionally. Both paths
  are blind idempotent writes of the same terminal value, so a race between
  them is harmless.
"""

from typing import Any, Callable, Optional

from eventreg.core import metrics
from eventreg.core.errors import ValidationError
from eventreg.core.logging import get_logger
from eventreg.schemas.checkout import CheckoutStartRequest
from eventreg.schemas.registration import Registration
from eventreg.services.payment_gateway import (
    PaymentGateway,
    PaymentIntentResult,
    normalize_currency,
    to_minor_units,
)
from eventreg.services.registration_service import RegistrationService

logger = get_logger(__name__)

GatewayFactory = Callable[[], PaymentGateway]


class CheckoutService:
    def __init__(
        self,
        registrations: RegistrationService,
        gateway_factory: GatewayFactory,
        webhooks_enabled: bool,
    ):
        self.registrations = registrations
        self._gateway_factory = gateway_factory
        self.webhooks_enabled = webhooks_enabled

    async def start(self, request: CheckoutStartRequest) -> int:
        """Create a pending registration. No PaymentIntent is created here."""
        registration = await self.registrations.create(request.to_registration())
        logger.info("checkout_started", registration_id=registration.id)
        return registration.id

    async def create_payment_intent(
        self,
        amount: Any,
        currency: Any = None,
        registration_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> PaymentIntentResult:
        # Reject bad input before the gateway (and its credential) is resolved
        try:
            to_minor_units(amount)
            normalize_currency(currency)
        except ValidationError:
            metrics.payment_intents.labels(result="rejected").inc()
            raise

        gateway = self._gateway_factory()
        return await gateway.create_payment_intent(
            amount,
            currency,
            metadata=metadata,
            registration_id=registration_id,
        )

    async def link_payment_intent(self, payment_intent_id: str, registration_id: int) -> None:
        await self.registrations.get_or_404(registration_id)
        gateway = self._gateway_factory()
        await gateway.link_registration(payment_intent_id, registration_id)

    async def confirm(self, registration_id: int) -> Registration:
        registration = await self.registrations.get_or_404(registration_id)

        if self.webhooks_enabled:
            logger.info(
                "checkout_confirm_read_only",
                registration_id=registration_id,
                status=registration.status.value,
            )
            return registration

        await self.registrations.mark_paid(registration_id)
        logger.info("checkout_confirmed_by_client", registration_id=registration_id)
        return await self.registrations.get_or_404(registration_id)
