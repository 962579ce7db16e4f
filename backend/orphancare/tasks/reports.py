"""Monthly donation report for admins"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from orphancare.core.errors import EmailDeliveryError
from orphancare.models.donation import Donation, TYPE_RECURRING
from orphancare.models.user import User, ROLE_ADMIN
from orphancare.services.email_service import send_monthly_report_email

logger = logging.getLogger("reports")


def previous_month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[first of last month, first of this month) in UTC"""
    this_month = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 1:
        last_month = datetime(now.year - 1, 12, 1, tzinfo=timezone.utc)
    else:
        last_month = datetime(now.year, now.month - 1, 1, tzinfo=timezone.utc)
    return last_month, this_month


def compute_monthly_stats(db: Session, start: datetime, end: datetime) -> Dict[str, int]:
    donations = db.query(Donation).filter(
        Donation.created_at >= start,
        Donation.created_at < end
    ).all()

    return {
        "total_donations": len(donations),
        "total_amount": sum(d.amount or 0 for d in donations),
        "new_recurring": sum(1 for d in donations if d.donation_type == TYPE_RECURRING),
    }


def send_monthly_reports(db: Session, now: Optional[datetime] = None) -> int:
    """Email last month's totals to every admin.

    Read-only. A failed email to one admin does not stop the others.

    Returns:
        Number of reports handed to the email provider
    """
    now = now or datetime.now(timezone.utc)
    start, end = previous_month_window(now)
    stats = compute_monthly_stats(db, start, end)
    logger.info(f"Monthly stats for {start:%Y-%m}: {stats}")

    admins = db.query(User).filter(User.role == ROLE_ADMIN).all()

    sent = 0
    for admin in admins:
        if not admin.email:
            continue
        try:
            if send_monthly_report_email(admin.email, **stats):
                sent += 1
        except EmailDeliveryError as e:
            logger.error(f"Monthly report to {admin.email} failed: {e}")

    logger.info(f"Monthly reports sent successfully ({sent}/{len(admins)} admins)")
    return sent
