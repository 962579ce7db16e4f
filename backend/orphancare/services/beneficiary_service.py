"""Beneficiary service - public orphan listings and admin profile management"""
import logging
from typing import Dict, List, Optional, Any

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orphancare.core.errors import NotFoundError, StoreError, ValidationError
from orphancare.models.beneficiary import Beneficiary
from orphancare.models.donation import Donation

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10
REQUIRED_FIELDS = ("name", "status")


def beneficiary_to_dict(beneficiary: Beneficiary) -> Dict[str, Any]:
    return {
        "id": beneficiary.id,
        "name": beneficiary.name,
        "age": beneficiary.age,
        "gender": beneficiary.gender,
        "location": beneficiary.location,
        "story": beneficiary.story,
        "photoUrl": beneficiary.photo_url,
        "monthlySupport": beneficiary.monthly_support,
        "currentDonors": beneficiary.current_donors,
        "status": beneficiary.status,
        "categoryId": beneficiary.category_id,
        "createdAt": beneficiary.created_at.isoformat() if beneficiary.created_at else None,
    }


def list_beneficiaries(
    db: Session,
    search: Optional[str] = None,
    limit: int = DEFAULT_LIST_LIMIT,
    category_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Newest beneficiaries first, optionally filtered by category and by name, location or story"""
    query = db.query(Beneficiary)
    if category_id:
        query = query.filter(Beneficiary.category_id == category_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Beneficiary.name.ilike(term),
            Beneficiary.location.ilike(term),
            Beneficiary.story.ilike(term)
        ))

    beneficiaries = query.order_by(Beneficiary.created_at.desc(), Beneficiary.id.desc()).limit(limit).all()
    return [beneficiary_to_dict(b) for b in beneficiaries]


def _get_or_404(beneficiary_id: int, db: Session) -> Beneficiary:
    beneficiary = db.query(Beneficiary).filter(Beneficiary.id == beneficiary_id).first()
    if not beneficiary:
        raise NotFoundError("Orphan not found")
    return beneficiary


def get_beneficiary(beneficiary_id: int, db: Session) -> Dict[str, Any]:
    return beneficiary_to_dict(_get_or_404(beneficiary_id, db))


def create_beneficiary(fields: Dict[str, Any], db: Session) -> Dict[str, Any]:
    """Create a beneficiary profile; the donor count always starts at zero"""
    beneficiary = Beneficiary(**{k: v for k, v in fields.items() if v is not None})
    beneficiary.current_donors = 0

    try:
        db.add(beneficiary)
        db.commit()
        db.refresh(beneficiary)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create beneficiary {fields.get('name')!r}: {e}")
        raise StoreError(str(e))

    logger.info(f"Created beneficiary {beneficiary.id}")
    return beneficiary_to_dict(beneficiary)


def update_beneficiary(beneficiary_id: int, fields: Dict[str, Any], db: Session) -> Dict[str, Any]:
    """Apply the given profile fields; fields not supplied are left as they are"""
    beneficiary = _get_or_404(beneficiary_id, db)
    for key, value in fields.items():
        if value is None and key in REQUIRED_FIELDS:
            raise ValidationError(f"{key} cannot be empty")
        setattr(beneficiary, key, value)

    try:
        db.commit()
        db.refresh(beneficiary)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update beneficiary {beneficiary_id}: {e}")
        raise StoreError(str(e))

    logger.info(f"Updated beneficiary {beneficiary_id}: {sorted(fields)}")
    return beneficiary_to_dict(beneficiary)


def delete_beneficiary(beneficiary_id: int, db: Session) -> None:
    """Delete a beneficiary that no donation references.

    Raises:
        NotFoundError: Beneficiary does not exist
        ValidationError: Donations still reference the beneficiary
    """
    beneficiary = _get_or_404(beneficiary_id, db)

    donation_count = db.query(Donation).filter(Donation.beneficiary_id == beneficiary_id).count()
    if donation_count:
        raise ValidationError(f"Orphan has {donation_count} donation(s) and cannot be deleted")

    try:
        db.delete(beneficiary)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete beneficiary {beneficiary_id}: {e}")
        raise StoreError(str(e))

    logger.info(f"Deleted beneficiary {beneficiary_id}")
