"""Daily backup reconciliation of per-beneficiary active donor counts"""
import logging
from collections import Counter
from typing import Dict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from orphancare.models.beneficiary import Beneficiary
from orphancare.models.donation import Donation, STATUS_ACTIVE, TYPE_RECURRING

logger = logging.getLogger("reconciliation")


def count_active_recurring_donors(db: Session) -> Dict[int, int]:
    """Active recurring donations grouped by beneficiary"""
    rows = db.query(Donation.beneficiary_id).filter(
        Donation.donation_type == TYPE_RECURRING,
        Donation.status == STATUS_ACTIVE
    ).all()

    counts = Counter(beneficiary_id for (beneficiary_id,) in rows if beneficiary_id is not None)
    logger.info(f"Processing {len(rows)} active subscriptions across {len(counts)} beneficiaries")
    return dict(counts)


def reconcile_beneficiary_donor_counts(db: Session) -> Dict[int, int]:
    """Recompute `current_donors` for every beneficiary from active recurring donations.

    Beneficiaries that no longer have any active recurring donation are reset
    to zero. Donation status is never touched here.

    Returns:
        Mapping of beneficiary id -> count that was written
    """
    counts = count_active_recurring_donors(db)

    written: Dict[int, int] = {}
    beneficiaries = db.query(Beneficiary).filter(
        or_(Beneficiary.id.in_(list(counts.keys())), Beneficiary.current_donors != 0)
    ).all()

    for beneficiary in beneficiaries:
        count = counts.get(beneficiary.id, 0)
        if beneficiary.current_donors != count:
            logger.debug(f"Beneficiary {beneficiary.id}: current_donors {beneficiary.current_donors} -> {count}")
        beneficiary.current_donors = count
        written[beneficiary.id] = count

    missing = set(counts) - set(written)
    if missing:
        logger.warning(f"Active donations reference unknown beneficiaries: {sorted(missing)}")

    db.commit()
    logger.info(f"Recurring donations processed successfully ({len(written)} beneficiaries updated)")
    return written
