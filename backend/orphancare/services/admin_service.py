"""Admin service - dashboard aggregates and donor listing"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from orphancare.models.beneficiary import Beneficiary
from orphancare.models.donation import Donation, STATUS_ACTIVE, TYPE_RECURRING
from orphancare.models.user import User, ROLE_DONOR

logger = logging.getLogger(__name__)


def current_month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[first of this month, first of next month) in UTC"""
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        return start, datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return start, datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def get_dashboard_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Headline numbers for the admin dashboard

    Monthly revenue is the summed amount of every donation created in the
    current UTC calendar month, in whole currency units.
    """
    start, end = current_month_window(now or datetime.now(timezone.utc))

    monthly_revenue = db.query(func.coalesce(func.sum(Donation.amount), 0)).filter(
        Donation.created_at >= start,
        Donation.created_at < end
    ).scalar()

    return {
        "totalDonors": db.query(User).filter(User.role == ROLE_DONOR).count(),
        "totalOrphans": db.query(Beneficiary).count(),
        "totalDonations": db.query(Donation).count(),
        "monthlyRevenue": int(monthly_revenue),
        "activeSubscriptions": db.query(Donation).filter(
            Donation.donation_type == TYPE_RECURRING,
            Donation.status == STATUS_ACTIVE
        ).count(),
    }


def list_donors(db: Session) -> List[Dict[str, Any]]:
    """Donor accounts, newest first"""
    donors = db.query(User).filter(
        User.role == ROLE_DONOR
    ).order_by(User.created_at.desc(), User.id.desc()).all()

    return [
        {
            "id": donor.id,
            "email": donor.email,
            "displayName": donor.display_name,
            "role": donor.role,
            "hasBillingCustomer": bool(donor.stripe_customer_id),
            "createdAt": donor.created_at.isoformat() if donor.created_at else None,
        }
        for donor in donors
    ]
