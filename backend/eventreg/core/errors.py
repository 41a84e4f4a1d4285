"""
Application error taxonomy.

Every error carries an HTTP status, a machine-readable code and a message
that is safe to return to the caller. Exception handlers in main.py render
them into the standard `{success: false, error, code, details?}` envelope.
"""

from typing import Any, Iterable, Optional

from fastapi import status


def field_errors(errors: Iterable[dict]) -> list[dict]:
    """Flatten pydantic error dicts to [{field, message}], dropping the 'body' location prefix."""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] == "body":
            loc = loc[1:]
        formatted.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return formatted


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.message
        self.code = code or self.code
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Validation failed"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class InvalidOrExpiredToken(AuthError):
    message = "Invalid or expired token"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ConfigurationError(AppError):
    """Missing or malformed deployment configuration (secret, credential)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "CONFIGURATION_ERROR"
    message = "Server is not configured correctly"


class GatewayError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_GATEWAY_ERROR"
    message = "Payment provider request failed"


class SignatureError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_SIGNATURE"
    message = "Webhook signature verification failed"


class StorageError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"
    message = "Storage operation failed"
