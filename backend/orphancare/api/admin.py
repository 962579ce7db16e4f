"""Admin API routes"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orphancare.core.security import require_admin
from orphancare.db.session import get_db
from orphancare.services.admin_service import get_dashboard_stats, list_donors
from orphancare.services.donation_service import list_all_donations

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/dashboard")
def dashboard(admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    """Headline donation numbers"""
    return {"success": True, "data": get_dashboard_stats(db)}


@router.get("/donors")
def donors(admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    """Donor accounts, newest first"""
    return {"success": True, "data": list_donors(db)}


@router.get("/donations")
def donations(admin_id: int = Depends(require_admin), db: Session = Depends(get_db)):
    """All donations, newest first"""
    return {"success": True, "data": list_all_donations(db)}
