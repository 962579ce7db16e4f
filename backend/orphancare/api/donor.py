"""Donor profile routes"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orphancare.core.errors import NotFoundError
from orphancare.core.security import require_auth
from orphancare.db.session import get_db
from orphancare.models.user import User
from orphancare.services.donation_service import get_donation_history

router = APIRouter(prefix="/donor", tags=["donor"])


@router.get("/me")
def get_profile(user_id: int = Depends(require_auth), db: Session = Depends(get_db)):
    """The caller's profile"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    return {
        "success": True,
        "data": {
            "id": user.id,
            "email": user.email,
            "displayName": user.display_name,
            "role": user.role,
            "hasBillingCustomer": bool(user.stripe_customer_id),
            "createdAt": user.created_at.isoformat() if user.created_at else None,
        }
    }


@router.get("/donations")
def get_donations(user_id: int = Depends(require_auth), db: Session = Depends(get_db)):
    """Alias of /donations/history"""
    return {"success": True, "data": get_donation_history(user_id, db)}
