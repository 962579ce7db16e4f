"""Webhook service - applies Stripe billing events to donation records"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from orphancare.core.errors import EmailDeliveryError
from orphancare.core.metrics import donations_cancelled_counter, webhook_events_counter
from orphancare.models.donation import Donation, STATUS_CANCELLED
from orphancare.models.stripe_event import StripeEvent
from orphancare.models.user import User
from orphancare.services import stripe_service
from orphancare.services.email_service import (
    send_donation_thank_you_email, send_payment_failed_email
)

logger = logging.getLogger("webhook")

EVENT_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
EVENT_PAYMENT_FAILED = "invoice.payment_failed"
EVENT_SUBSCRIPTION_DELETED = "customer.subscription.deleted"


# ============================================================================
# EVENT LOG
# ============================================================================

def _event_payload(event: Any) -> dict:
    if hasattr(event, "to_dict"):
        return event.to_dict()
    return dict(event)


def log_stripe_event(event_id: str, event_type: str, payload: dict, db: Session) -> StripeEvent:
    stripe_event = db.query(StripeEvent).filter(StripeEvent.stripe_event_id == event_id).first()
    if not stripe_event:
        stripe_event = StripeEvent(
            stripe_event_id=event_id,
            event_type=event_type,
            payload=payload,
            processed=False
        )
        db.add(stripe_event)
        db.commit()
        db.refresh(stripe_event)
    return stripe_event


def mark_stripe_event_processed(event_id: str, db: Session, error_message: str = None):
    stripe_event = db.query(StripeEvent).filter(StripeEvent.stripe_event_id == event_id).first()
    if stripe_event:
        stripe_event.processed = True
        stripe_event.processed_at = datetime.now(timezone.utc)
        stripe_event.error_message = error_message
        db.commit()


# ============================================================================
# HELPERS
# ============================================================================

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _event_time(event: Any) -> Optional[datetime]:
    created = event.get("created") if isinstance(event, dict) else getattr(event, "created", None)
    if not created:
        return None
    return datetime.fromtimestamp(int(created), tz=timezone.utc)


def find_donation_by_subscription(subscription_id: Optional[str], db: Session) -> Optional[Donation]:
    """First donation linked to a Stripe subscription (oldest wins if several match)"""
    if not subscription_id:
        return None
    return db.query(Donation).filter(
        Donation.stripe_subscription_id == subscription_id
    ).order_by(Donation.id).first()


def _is_stale(donation: Donation, event_time: Optional[datetime]) -> bool:
    last_event_at = _as_utc(donation.last_event_at)
    if event_time is None or last_event_at is None:
        return False
    return event_time < last_event_at


def _record_event_time(donation: Donation, event_time: Optional[datetime]) -> None:
    last_event_at = _as_utc(donation.last_event_at)
    if event_time is not None and (last_event_at is None or event_time > last_event_at):
        donation.last_event_at = event_time


def _notify_donor(donation: Donation, send: Callable[..., bool], db: Session) -> None:
    """Email the donor; delivery failures are logged and never undo the state change"""
    user = db.query(User).filter(User.id == donation.donor_id).first()
    if not user or not user.email:
        logger.warning(f"No email on file for donor {donation.donor_id} (donation {donation.id})")
        return

    try:
        send(user.email, donation.amount, donation.currency)
    except EmailDeliveryError as e:
        logger.error(f"Notification for donation {donation.id} to {user.email} failed: {e}")


# ============================================================================
# EVENT HANDLERS
# ============================================================================

def handle_payment_succeeded(invoice: Any, event_time: Optional[datetime], db: Session):
    subscription_id = stripe_service.get_invoice_subscription_id(invoice)
    donation = find_donation_by_subscription(subscription_id, db)
    if not donation:
        logger.info(f"No donation for subscription {subscription_id}; payment event acknowledged")
        return

    # A late-arriving payment never overwrites newer state, but the payment still happened
    if _is_stale(donation, event_time):
        logger.warning(
            f"Not recording stale payment event for donation {donation.id} "
            f"(event {event_time}, last applied {donation.last_event_at})"
        )
    else:
        donation.last_payment_date = event_time or datetime.now(timezone.utc)
        _record_event_time(donation, event_time)
        db.commit()
        logger.info(f"Recorded payment for donation {donation.id} (subscription {subscription_id})")

    _notify_donor(donation, send_donation_thank_you_email, db)


def handle_payment_failed(invoice: Any, event_time: Optional[datetime], db: Session):
    # Status is left alone: Stripe retries the invoice and ends the subscription if it gives up
    subscription_id = stripe_service.get_invoice_subscription_id(invoice)
    donation = find_donation_by_subscription(subscription_id, db)
    if not donation:
        logger.info(f"No donation for subscription {subscription_id}; failed payment acknowledged")
        return

    logger.warning(f"Payment failed for donation {donation.id} (subscription {subscription_id})")
    _notify_donor(donation, send_payment_failed_email, db)


def handle_subscription_deleted(subscription: Any, event_time: Optional[datetime], db: Session):
    # Cancelled is terminal, so this applies regardless of event ordering
    subscription_id = stripe_service.get_object_id(subscription)
    donation = find_donation_by_subscription(subscription_id, db)
    if not donation:
        logger.info(f"No donation for ended subscription {subscription_id}")
        return

    if donation.status != STATUS_CANCELLED:
        donation.status = STATUS_CANCELLED
        donations_cancelled_counter.labels(source="webhook").inc()
        logger.info(f"Donation {donation.id} cancelled (subscription {subscription_id} ended)")
    else:
        logger.info(f"Donation {donation.id} already cancelled")

    _record_event_time(donation, event_time)
    db.commit()


EVENT_HANDLERS: Dict[str, Callable[[Any, Optional[datetime], Session], None]] = {
    EVENT_PAYMENT_SUCCEEDED: handle_payment_succeeded,
    EVENT_PAYMENT_FAILED: handle_payment_failed,
    EVENT_SUBSCRIPTION_DELETED: handle_subscription_deleted,
}


# ============================================================================
# WEBHOOK PROCESSING
# ============================================================================

def process_billing_webhook(
    payload: bytes,
    sig_header: Optional[str],
    db: Session
) -> Dict[str, Any]:
    """Process a Stripe webhook delivery.

    The signature is verified before anything is read from or written to the
    database. Unknown event types are logged and acknowledged.

    Args:
        payload: Raw request body as bytes (must not be parsed by middleware)
        sig_header: Value of the stripe-signature header
        db: Database session

    Returns:
        Dict with status information

    Raises:
        AuthenticityError: Signature or secret problem; nothing was processed
        Exception: Anything raised while applying the event, after it has been
            recorded on the event log
    """
    event = stripe_service.construct_webhook_event(payload, sig_header)

    event_id = event["id"]
    event_type = event["type"]

    stripe_event = log_stripe_event(event_id, event_type, _event_payload(event), db)

    if stripe_event.processed and not stripe_event.error_message:
        logger.info(f"Webhook event {event_id} already processed")
        webhook_events_counter.labels(event_type=event_type, outcome="duplicate").inc()
        return {"status": "already_processed"}

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled event type: {event_type}")
        mark_stripe_event_processed(event_id, db)
        webhook_events_counter.labels(event_type=event_type, outcome="ignored").inc()
        return {"status": "ignored"}

    try:
        handler(event["data"]["object"], _event_time(event), db)
    except Exception as e:
        db.rollback()
        logger.error(f"Error processing webhook {event_id} ({event_type}): {e}", exc_info=True)
        mark_stripe_event_processed(event_id, db, error_message=str(e))
        webhook_events_counter.labels(event_type=event_type, outcome="error").inc()
        raise

    mark_stripe_event_processed(event_id, db)
    webhook_events_counter.labels(event_type=event_type, outcome="success").inc()
    logger.info(f"Successfully processed webhook event {event_id} of type {event_type}")
    return {"status": "success"}
