"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from eventreg.api.routes import auth, checkout, registrations, webhooks
from eventreg.core.config import get_settings

api_router = APIRouter(prefix=get_settings().API_PREFIX)
api_router.include_router(auth.router)
api_router.include_router(checkout.router)
api_router.include_router(registrations.router)
api_router.include_router(webhooks.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers."""
    return {"ok": True}
