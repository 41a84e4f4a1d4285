from eventreg.schemas.common import ApiResponse, ErrorResponse
from eventreg.schemas.registration import RegistrationCreate, Registration, CheckInRequest
from eventreg.schemas.checkout import (
    CheckoutStartRequest,
    CheckoutStartResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    LinkPaymentIntentRequest,
    LinkPaymentIntentResponse,
    ConfirmRequest,
)
from eventreg.schemas.auth import LoginRequest, LoginResponse, TokenPayload

__all__ = [
    "ApiResponse", "ErrorResponse",
    "RegistrationCreate", "Registration", "CheckInRequest",
    "CheckoutStartRequest", "CheckoutStartResponse",
    "PaymentIntentRequest", "PaymentIntentResponse",
    "LinkPaymentIntentRequest", "LinkPaymentIntentResponse", "ConfirmRequest",
    "LoginRequest", "LoginResponse", "TokenPayload",
]
