"""SQLAlchemy models package - imports all models so they register with Base.metadata"""
from orphancare.models.base import Base
from orphancare.models.user import User
from orphancare.models.beneficiary import Beneficiary
from orphancare.models.donation import Donation
from orphancare.models.stripe_event import StripeEvent

# Export all for convenience
__all__ = ["Base", "User", "Beneficiary", "Donation", "StripeEvent"]
