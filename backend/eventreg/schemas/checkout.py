"""
Pydantic schemas for the checkout flow.
"""

from typing import Any, Optional

from pydantic import Field, StrictBool, field_validator

from eventreg.schemas.common import CamelModel
from eventreg.schemas.registration import RegistrationCreate


class CheckoutStartRequest(RegistrationCreate):
    consent: StrictBool

    @field_validator("consent")
    @classmethod
    def consent_given(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must agree to the terms")
        return value

    def to_registration(self) -> RegistrationCreate:
        return RegistrationCreate.model_validate(self.model_dump(exclude={"consent"}))


class CheckoutStartResponse(CamelModel):
    registration_id: int


class PaymentIntentRequest(CamelModel):
    # amount/currency are checked by the payment gateway so that bad values map to
    # INVALID_AMOUNT / INVALID_CURRENCY rather than a generic schema error
    amount: Any = None
    currency: Any = None
    registration_id: Optional[int] = Field(None, gt=0)
    metadata: Optional[dict[str, Any]] = None


class PaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str


class LinkPaymentIntentRequest(CamelModel):
    payment_intent_id: str = Field(..., min_length=1)
    registration_id: int = Field(..., gt=0, strict=True)


class LinkPaymentIntentResponse(CamelModel):
    payment_intent_id: str
    registration_id: int


class ConfirmRequest(CamelModel):
    registration_id: int = Field(..., gt=0, strict=True)
