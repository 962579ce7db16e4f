"""Error taxonomy shared by services and API routes"""


class DonationServiceError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(DonationServiceError):
    """Missing or malformed required input"""
    status_code = 400


class NotFoundError(DonationServiceError):
    """Referenced entity does not exist"""
    status_code = 404


class ForbiddenError(DonationServiceError):
    """Authenticated but not entitled"""
    status_code = 403


class AuthenticityError(DonationServiceError):
    """Webhook signature invalid or webhook secret missing"""
    status_code = 400


class ProviderError(DonationServiceError):
    """Billing provider (Stripe) call failed"""
    status_code = 500


class StoreError(DonationServiceError):
    """Database call failed"""
    status_code = 500


class EmailDeliveryError(Exception):
    """Email could not be handed to the delivery provider.

    Not a DonationServiceError: callers log it and carry on.
    """
