"""Billing webhook routes"""
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from orphancare.core.errors import AuthenticityError
from orphancare.db.session import get_db
from orphancare.services.webhook_service import process_billing_webhook

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger("webhook")


@router.post("/billing")
@router.post("/stripe", include_in_schema=False)
async def billing_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Stripe webhook events

    Note: This route must be excluded from any global JSON parsing middleware
    to ensure the request body remains as raw bytes for signature verification.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        process_billing_webhook(payload, sig_header, db)
    except AuthenticityError:
        # Rendered as 400 by the app-level handler; Stripe treats it as a permanent rejection
        raise
    except Exception as e:
        logger.error(f"Webhook handler error: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Webhook processing failed"}
        )

    return {"success": True, "received": True}
