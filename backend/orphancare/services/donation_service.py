"""Donation service - recurring donation creation, cancellation and history"""
import logging
from typing import Dict, List, Optional, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orphancare.core.config import settings
from orphancare.core.errors import (
    ForbiddenError, NotFoundError, StoreError, ValidationError
)
from orphancare.core.metrics import donations_cancelled_counter, subscriptions_created_counter
from orphancare.models.beneficiary import Beneficiary
from orphancare.models.donation import (
    Donation, STATUS_ACTIVE, STATUS_CANCELLED, TYPE_RECURRING
)
from orphancare.models.user import User
from orphancare.services import stripe_service

logger = logging.getLogger(__name__)


def _validate_amount(amount: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if amount is None or isinstance(amount, bool):
        raise ValidationError("Beneficiary ID and amount are required")
    if not isinstance(amount, int):
        raise ValidationError("Amount must be a whole number")
    if amount <= 0:
        raise ValidationError("Amount must be a positive whole number")
    return amount


def get_or_create_customer_id(user: User, db: Session) -> str:
    """Return the donor's Stripe customer id, creating and persisting it on first use.

    A failure after Stripe creates the customer but before the commit leaves an
    unlinked Stripe customer; re-running reuses it through the idempotency key.
    """
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer_id = stripe_service.create_customer(user.id, user.email)

    try:
        user.stripe_customer_id = customer_id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to save Stripe customer {customer_id} on user {user.id}: {e}")
        raise StoreError(str(e))

    return customer_id


def create_subscription(
    user_id: int,
    beneficiary_id: Optional[int],
    amount: Optional[int],
    db: Session,
    idempotency_key: Optional[str] = None
) -> Dict[str, Any]:
    """Start a monthly recurring donation.

    Args:
        user_id: Donor user ID
        beneficiary_id: Beneficiary the donation supports
        amount: Monthly amount in whole currency units
        db: Database session
        idempotency_key: Optional caller-supplied key; a retried request with
            the same key does not create a second Stripe subscription

    Returns:
        Dict with donationId, subscriptionId and clientSecret

    Raises:
        ValidationError: Missing beneficiary or invalid amount
        NotFoundError: Donor or beneficiary does not exist
        ProviderError: Stripe call failed
        StoreError: Database write failed
    """
    if not beneficiary_id:
        raise ValidationError("Beneficiary ID and amount are required")
    amount = _validate_amount(amount)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    beneficiary = db.query(Beneficiary).filter(Beneficiary.id == beneficiary_id).first()
    if not beneficiary:
        raise NotFoundError("Beneficiary not found")

    customer_id = get_or_create_customer_id(user, db)

    subscription = stripe_service.create_monthly_subscription(
        customer_id,
        amount,
        product_name=f"Monthly support for {beneficiary.name}",
        metadata={"user_id": str(user_id), "beneficiary_id": str(beneficiary_id)},
        idempotency_key=idempotency_key
    )

    # A replayed idempotency key returns the same subscription; reuse its record
    donation = None
    if idempotency_key:
        donation = db.query(Donation).filter(
            Donation.stripe_subscription_id == subscription.id
        ).first()

    if donation is None:
        donation = Donation(
            donor_id=user_id,
            beneficiary_id=beneficiary_id,
            amount=amount,
            currency=settings.DONATION_CURRENCY,
            donation_type=TYPE_RECURRING,
            status=STATUS_ACTIVE,
            stripe_subscription_id=subscription.id
        )
        try:
            db.add(donation)
            db.commit()
            db.refresh(donation)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record donation for subscription {subscription.id}: {e}")
            raise StoreError(str(e))

        subscriptions_created_counter.inc()
        logger.info(f"Created donation {donation.id} for user {user_id} -> beneficiary {beneficiary_id} (subscription {subscription.id})")
    else:
        logger.info(f"Idempotent replay for subscription {subscription.id}, returning donation {donation.id}")

    return {
        "donationId": donation.id,
        "subscriptionId": subscription.id,
        "clientSecret": stripe_service.get_client_secret(subscription)
    }


def cancel_donation(user_id: int, donation_id: Optional[int], db: Session) -> None:
    """Cancel a donor's own donation.

    Stripe is cancelled before the local write so a provider failure never
    leaves a donation marked cancelled while still billing.
    Cancelling an already-cancelled donation is a no-op.

    Raises:
        ValidationError: donation_id missing
        NotFoundError: Donation does not exist
        ForbiddenError: Donation belongs to another donor
        ProviderError: Stripe cancellation failed (donation left unchanged)
        StoreError: Database write failed after Stripe cancellation
    """
    if not donation_id:
        raise ValidationError("Donation ID is required")

    donation = db.query(Donation).filter(Donation.id == donation_id).first()
    if not donation:
        raise NotFoundError("Donation not found")

    if donation.donor_id != user_id:
        logger.warning(f"User {user_id} attempted to cancel donation {donation_id} owned by user {donation.donor_id}")
        raise ForbiddenError("Forbidden")

    if donation.status == STATUS_CANCELLED:
        logger.info(f"Donation {donation_id} already cancelled")
        return

    if donation.stripe_subscription_id:
        stripe_service.cancel_subscription(donation.stripe_subscription_id)

    try:
        donation.status = STATUS_CANCELLED
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Stripe subscription {donation.stripe_subscription_id} cancelled but donation {donation_id} "
            f"could not be updated: {e}"
        )
        raise StoreError(str(e))

    donations_cancelled_counter.labels(source="donor").inc()
    logger.info(f"User {user_id} cancelled donation {donation_id}")


def get_donation_history(user_id: int, db: Session) -> List[Dict[str, Any]]:
    """The donor's donations, newest first"""
    donations = db.query(Donation).filter(
        Donation.donor_id == user_id
    ).order_by(Donation.created_at.desc(), Donation.id.desc()).all()
    return [donation.to_dict() for donation in donations]


def list_all_donations(db: Session) -> List[Dict[str, Any]]:
    """Every donation, newest first (admin view)"""
    donations = db.query(Donation).order_by(Donation.created_at.desc(), Donation.id.desc()).all()
    return [donation.to_dict() for donation in donations]
