"""Donations API routes"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from orphancare.core.security import require_auth
from orphancare.db.session import get_db
from orphancare.schemas.donations import CancelRequest, SubscribeRequest
from orphancare.services.donation_service import (
    cancel_donation, create_subscription, get_donation_history
)

router = APIRouter(prefix="/donations", tags=["donations"])
logger = logging.getLogger(__name__)


@router.post("/subscribe")
def subscribe(
    subscribe_request: SubscribeRequest,
    user_id: int = Depends(require_auth),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db)
):
    """Start a monthly recurring donation for a beneficiary.

    Returns the Stripe client secret the browser uses to confirm the first payment.
    """
    result = create_subscription(
        user_id,
        subscribe_request.beneficiary_id,
        subscribe_request.amount,
        db,
        idempotency_key=idempotency_key
    )
    return {"success": True, **result}


@router.post("/cancel")
def cancel(
    cancel_request: CancelRequest,
    user_id: int = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Cancel one of the caller's donations (Stripe first, then locally)"""
    cancel_donation(user_id, cancel_request.donation_id, db)
    return {"success": True, "message": "Subscription cancelled successfully"}


@router.get("/history")
def history(user_id: int = Depends(require_auth), db: Session = Depends(get_db)):
    """The caller's donations, newest first"""
    return {"success": True, "data": get_donation_history(user_id, db)}
