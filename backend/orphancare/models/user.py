"""User model"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from orphancare.models.base import Base

ROLE_DONOR = "donor"
ROLE_ADMIN = "admin"


class User(Base):
    """Donor and admin accounts"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(String(20), default=ROLE_DONOR, nullable=False, index=True)  # 'donor', 'admin'
    stripe_customer_id = Column(String(255), nullable=True, index=True)  # Written only by the subscription flow
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    donations = relationship("Donation", back_populates="donor", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
