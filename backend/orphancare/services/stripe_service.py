"""Stripe provider client - the only module that talks to the Stripe SDK"""
import logging
import stripe
from typing import Any, Optional

from orphancare.core.config import settings
from orphancare.core.errors import AuthenticityError, ProviderError

logger = logging.getLogger(__name__)

# Configure Stripe
stripe.api_key = settings.STRIPE_SECRET_KEY


# ============================================================================
# STRIPE OBJECT ACCESS HELPER
# ============================================================================

def _get_stripe_value(obj: Any, key: str, default=None):
    """Safely extract value from Stripe object (supports both dict and attribute access)."""
    if obj is None:
        return default
    # Dict access first: Stripe objects are dict subclasses, and plain dicts come from tests
    if isinstance(obj, dict):
        value = obj.get(key)
        return default if value is None else value
    value = getattr(obj, key, None)
    return default if value is None else value


def get_object_id(obj: Any) -> Optional[str]:
    """Return the id of an expanded object, or the value itself when unexpanded"""
    if obj is None or isinstance(obj, str):
        return obj
    return _get_stripe_value(obj, 'id')


# ============================================================================
# CUSTOMERS
# ============================================================================

def create_customer(user_id: int, email: Optional[str]) -> str:
    """Create a Stripe customer for a donor and return its id.

    The idempotency key is derived from the donor id, so concurrent first-time
    subscriptions for the same donor resolve to a single Stripe customer.
    """
    try:
        customer = stripe.Customer.create(
            email=email,
            metadata={"user_id": str(user_id)},
            idempotency_key=f"donor-customer-{user_id}"
        )
    except stripe.StripeError as e:
        logger.error(f"Failed to create Stripe customer for user {user_id}: {e}")
        raise ProviderError(_error_message(e))

    logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
    return customer.id


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

def create_monthly_subscription(
    customer_id: str,
    amount: int,
    product_name: str,
    metadata: Optional[dict] = None,
    idempotency_key: Optional[str] = None
) -> Any:
    """Create a monthly subscription priced inline.

    Args:
        customer_id: Stripe customer id
        amount: Whole currency units; converted to Stripe minor units here
        product_name: Name shown on the donor's invoice
        metadata: Stored on the Stripe subscription
        idempotency_key: Optional caller-supplied key forwarded to Stripe

    Returns:
        Stripe Subscription with `latest_invoice.payment_intent` expanded

    Raises:
        ProviderError: If Stripe rejects the request
    """
    params = dict(
        customer=customer_id,
        items=[{
            "price_data": {
                "currency": settings.DONATION_CURRENCY,
                "product_data": {"name": product_name},
                "recurring": {"interval": "month"},
                "unit_amount": amount * 100,
            }
        }],
        payment_behavior="default_incomplete",
        expand=["latest_invoice.payment_intent"],
        metadata=metadata or {},
    )
    if idempotency_key:
        params["idempotency_key"] = idempotency_key

    try:
        subscription = stripe.Subscription.create(**params)
    except stripe.StripeError as e:
        logger.error(f"Failed to create Stripe subscription for customer {customer_id}: {e}")
        raise ProviderError(_error_message(e))

    logger.info(f"Created Stripe subscription {subscription.id} for customer {customer_id} ({amount} {settings.DONATION_CURRENCY})")
    return subscription


def get_client_secret(subscription: Any) -> Optional[str]:
    """Client secret the browser needs to confirm the first invoice.

    Read from the expanded payment intent; newer API versions expose it as
    `latest_invoice.confirmation_secret` instead.
    """
    invoice = _get_stripe_value(subscription, 'latest_invoice')
    if invoice is None or isinstance(invoice, str):
        return None

    payment_intent = _get_stripe_value(invoice, 'payment_intent')
    if payment_intent is not None and not isinstance(payment_intent, str):
        secret = _get_stripe_value(payment_intent, 'client_secret')
        if secret:
            return secret

    confirmation_secret = _get_stripe_value(invoice, 'confirmation_secret')
    return _get_stripe_value(confirmation_secret, 'client_secret')


def cancel_subscription(subscription_id: str) -> None:
    """Cancel a Stripe subscription immediately"""
    try:
        stripe.Subscription.cancel(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"Failed to cancel Stripe subscription {subscription_id}: {e}")
        raise ProviderError(_error_message(e))

    logger.info(f"Canceled Stripe subscription {subscription_id}")


# ============================================================================
# WEBHOOKS
# ============================================================================

def construct_webhook_event(payload: bytes, sig_header: Optional[str]) -> Any:
    """Verify a webhook delivery and return the Stripe event.

    Raises:
        AuthenticityError: Secret not configured, header missing, payload
            malformed or signature invalid
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Webhook secret not configured")
        raise AuthenticityError("Webhook secret not configured")

    if not sig_header:
        raise AuthenticityError("Missing stripe-signature header")

    try:
        return stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        raise AuthenticityError("Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"Invalid webhook signature: {e}")
        raise AuthenticityError("Invalid signature")


def get_invoice_subscription_id(invoice: Any) -> Optional[str]:
    """Subscription id an invoice belongs to.

    Older API versions put it on `invoice.subscription`; newer ones under
    `invoice.parent.subscription_details.subscription`.
    """
    subscription = _get_stripe_value(invoice, 'subscription')
    if subscription:
        return get_object_id(subscription)

    parent = _get_stripe_value(invoice, 'parent')
    details = _get_stripe_value(parent, 'subscription_details')
    return get_object_id(_get_stripe_value(details, 'subscription'))


def _error_message(error: Exception) -> str:
    return getattr(error, 'user_message', None) or str(error) or error.__class__.__name__
