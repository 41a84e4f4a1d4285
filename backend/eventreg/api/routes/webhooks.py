"""
Stripe webhook endpoint.

Reads the raw request body: the signature is computed over the exact bytes
Stripe sent, so the body must not go through JSON parsing first.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from eventreg.api.deps import get_webhook_service
from eventreg.services.webhook_service import WebhookService

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    webhooks: WebhookService = Depends(get_webhook_service),
):
    payload = await request.body()
    return await webhooks.handle(payload, stripe_signature)
