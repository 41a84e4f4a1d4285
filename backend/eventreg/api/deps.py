"""
FastAPI dependencies wiring services to the process-wide store and gateway.

Tests swap implementations through app.dependency_overrides on get_storage
and get_gateway_factory.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eventreg.core.config import get_settings
from eventreg.core.errors import AuthError, InvalidOrExpiredToken
from eventreg.core.logging import get_logger
from eventreg.schemas.auth import TokenPayload
from eventreg.services.auth_service import verify_admin_token
from eventreg.services.checkout_service import CheckoutService, GatewayFactory
from eventreg.services.payment_gateway import get_payment_gateway
from eventreg.services.registration_service import RegistrationService
from eventreg.services.webhook_service import WebhookService
from eventreg.storage import RegistrationStore, get_storage

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_registration_service(store: RegistrationStore = Depends(get_storage)) -> RegistrationService:
    return RegistrationService(store)


def get_gateway_factory() -> GatewayFactory:
    # The gateway is resolved only when a payment call is about to be made
    return get_payment_gateway


def get_checkout_service(
    registrations: RegistrationService = Depends(get_registration_service),
    gateway_factory: GatewayFactory = Depends(get_gateway_factory),
) -> CheckoutService:
    return CheckoutService(
        registrations,
        gateway_factory,
        webhooks_enabled=get_settings().webhooks_enabled,
    )


def get_webhook_service(
    registrations: RegistrationService = Depends(get_registration_service),
) -> WebhookService:
    return WebhookService(registrations, secret=get_settings().STRIPE_WEBHOOK_SECRET)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenPayload:
    """
    Bearer-token guard for admin endpoints.
    Missing and invalid tokens both answer 401 with the same body shape;
    the cause is only logged.
    """
    if credentials is None:
        logger.info("admin_auth_rejected", reason="missing_token")
        raise AuthError()

    try:
        return verify_admin_token(credentials.credentials)
    except InvalidOrExpiredToken:
        logger.info("admin_auth_rejected", reason="invalid_or_expired_token")
        raise
