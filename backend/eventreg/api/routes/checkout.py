"""
Checkout endpoints: registration, PaymentIntent creation, linking and confirmation.
"""

from fastapi import APIRouter, Depends

from eventreg.api.deps import get_checkout_service
from eventreg.schemas.checkout import (
    CheckoutStartRequest,
    CheckoutStartResponse,
    ConfirmRequest,
    LinkPaymentIntentRequest,
    LinkPaymentIntentResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)
from eventreg.schemas.common import ApiResponse
from eventreg.schemas.registration import Registration
from eventreg.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["Checkout"])


@router.post("/start", response_model=ApiResponse[CheckoutStartResponse])
async def start_checkout(
    body: CheckoutStartRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Create a pending registration. Consent must be true."""
    registration_id = await checkout.start(body)
    return ApiResponse(data=CheckoutStartResponse(registration_id=registration_id))


@router.post("/create-payment-intent", response_model=ApiResponse[PaymentIntentResponse])
async def create_payment_intent(
    body: PaymentIntentRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a Stripe PaymentIntent and return its client secret.

    May be called before the registration exists; the id can be linked later
    through /checkout/link-payment-intent.
    """
    result = await checkout.create_payment_intent(
        body.amount,
        body.currency,
        registration_id=body.registration_id,
        metadata=body.metadata,
    )
    return ApiResponse(
        data=PaymentIntentResponse(
            client_secret=result.client_secret,
            payment_intent_id=result.payment_intent_id,
        )
    )


@router.post("/link-payment-intent", response_model=ApiResponse[LinkPaymentIntentResponse])
async def link_payment_intent(
    body: LinkPaymentIntentRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Write the registration id into an existing PaymentIntent's metadata."""
    await checkout.link_payment_intent(body.payment_intent_id, body.registration_id)
    return ApiResponse(
        data=LinkPaymentIntentResponse(
            payment_intent_id=body.payment_intent_id,
            registration_id=body.registration_id,
        )
    )


@router.post("/confirm", response_model=ApiResponse[Registration])
async def confirm_checkout(
    body: ConfirmRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    registration = await checkout.confirm(body.registration_id)
    return ApiResponse(data=registration)
