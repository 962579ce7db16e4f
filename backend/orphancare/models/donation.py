"""Donation model"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from orphancare.models.base import Base

TYPE_ONE_TIME = "one-time"
TYPE_RECURRING = "recurring"

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"


class Donation(Base):
    """A pledge from a donor to a beneficiary, one-time or recurring"""
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, index=True)
    donor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    beneficiary_id = Column(Integer, ForeignKey("beneficiaries.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Whole currency units, converted to minor units only for Stripe
    currency = Column(String(3), nullable=False)
    donation_type = Column(String(20), nullable=False, index=True)  # 'one-time', 'recurring'
    status = Column(String(20), nullable=False, index=True)  # 'active', 'cancelled', 'completed'
    stripe_subscription_id = Column(String(255), nullable=True, index=True)  # Recurring only
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    last_event_at = Column(DateTime(timezone=True), nullable=True)  # `created` of the newest Stripe event applied
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    donor = relationship("User", back_populates="donations")
    beneficiary = relationship("Beneficiary", back_populates="donations")

    def to_dict(self) -> dict:
        """Serialize for API responses"""
        return {
            "id": self.id,
            "donorId": self.donor_id,
            "beneficiaryId": self.beneficiary_id,
            "amount": self.amount,
            "currency": self.currency,
            "type": self.donation_type,
            "status": self.status,
            "stripeSubscriptionId": self.stripe_subscription_id,
            "lastPaymentDate": self.last_payment_date.isoformat() if self.last_payment_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
