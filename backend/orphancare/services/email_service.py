"""Email service - transactional email via Resend"""
import logging
from typing import Optional

import resend

from orphancare.core.config import settings
from orphancare.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


ORGANIZATION_FOOTER = "የኢትዮጵያ ወላጅ አልባ ህጻናት እንክብካቤ - Ethiopian Orphan Care"


def validate_email_config() -> tuple[bool, str]:
    """
    Validate email service configuration.

    Returns:
        tuple: (is_valid, error_message)
    """
    if not settings.RESEND_API_KEY:
        return False, "RESEND_API_KEY is not set in environment variables"

    if not settings.RESEND_FROM_EMAIL:
        return False, "RESEND_FROM_EMAIL is not set in environment variables"

    return True, ""


def send_email(to: str, subject: str, html: str) -> bool:
    """
    Send an email via the Resend API.

    Args:
        to: Recipient email address
        subject: Email subject
        html: HTML email content

    Returns:
        bool: True when handed to Resend, False when email is not configured

    Raises:
        EmailDeliveryError: Resend rejected the message or returned no id
    """
    if not settings.RESEND_API_KEY:
        logger.warning(f"RESEND_API_KEY is not set; skipping email '{subject}' to {to}")
        return False

    try:
        resend.api_key = settings.RESEND_API_KEY

        response = resend.Emails.send(
            {
                "from": settings.RESEND_FROM_EMAIL,
                "to": to,
                "subject": subject,
                "html": html,
            }
        )
    except Exception as exc:
        logger.error(f"Failed to send email to {to}: {exc}")
        raise EmailDeliveryError(str(exc)) from exc

    # Resend returns dict with 'id' field on success; handle both dict and object responses
    email_id = None
    if isinstance(response, dict):
        email_id = response.get('id')
    elif hasattr(response, 'id'):
        email_id = response.id

    if not email_id:
        logger.error(f"Email send returned invalid response: {response} (type: {type(response)})")
        raise EmailDeliveryError(f"Invalid response from Resend for {to}")

    logger.info(f"Email sent successfully to {to} (id: {email_id})")
    return True


def _format_amount(amount: int, currency: Optional[str] = None) -> str:
    code = (currency or settings.DONATION_CURRENCY).upper()
    if code == "ETB":
        return f"ብር {amount} (ETB {amount})"
    return f"{amount} {code}"


def send_donation_thank_you_email(email: str, amount: int, currency: Optional[str] = None) -> bool:
    """Thank the donor after a successful monthly payment"""
    html = f"""
    <h1>እናመሰግናለን! (Thank you!)</h1>
    <p>Your monthly donation of {_format_amount(amount, currency)} has been processed successfully.</p>
    <p>Your support makes a real difference in the lives of Ethiopian orphans across all regions.</p>
    <p>{ORGANIZATION_FOOTER}</p>
    """

    return send_email(email, "Thank you for your donation", html)


def send_payment_failed_email(email: str, amount: int, currency: Optional[str] = None) -> bool:
    """Ask the donor to update their payment method"""
    html = f"""
    <h1>Payment Failed - ክፍያ አልተሳካም</h1>
    <p>We were unable to process your monthly donation of {_format_amount(amount, currency)}.</p>
    <p>Please update your payment method to continue supporting Ethiopian orphans across all regions.</p>
    <p>{ORGANIZATION_FOOTER}</p>
    """

    return send_email(email, "Payment Failed", html)


def send_monthly_report_email(email: str, total_donations: int, total_amount: int, new_recurring: int) -> bool:
    """Send the prior-month summary to an admin"""
    html = f"""
    <h1>Monthly Report</h1>
    <p>Here's your monthly summary:</p>
    <ul>
        <li>Total Donations: {total_donations}</li>
        <li>Total Revenue: {_format_amount(total_amount)}</li>
        <li>New Recurring Donors: {new_recurring}</li>
    </ul>
    """

    return send_email(email, f"Monthly Report - {settings.ORGANIZATION_NAME}", html)
