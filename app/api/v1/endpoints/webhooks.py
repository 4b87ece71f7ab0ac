"""Payment provider webhooks."""

import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import aget_db
from app.schemas.paymentSchema import WebhookEvent
from app.services.PaymentWebhookService import PaymentWebhookService
from app.services.PaystackServices import PaystackService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/paystack")
@limiter.limit("120/minute")
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(aget_db)
):
    """Verify the Paystack signature, then reconcile the event best-effort."""
    body = await request.body()
    signature = request.headers.get("x-paystack-signature")

    if not signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    if not PaystackService.verify_webhook_signature(body, signature):
        logger.warning("Webhook signature verification failed")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        event = WebhookEvent.model_validate(json.loads(body))
    except ValueError as e:
        logger.error(f"Malformed webhook payload: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed payload")

    summary = await PaymentWebhookService(db).handle_event(event.event, event.data)
    return {"received": True, **summary}
