"""Beneficiary (orphan profile) model"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from orphancare.models.base import Base


class Beneficiary(Base):
    """Orphan profile supported by donations"""
    __tablename__ = "beneficiaries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)  # 'male', 'female'
    location = Column(String(255), nullable=True)
    story = Column(Text, nullable=True)
    photo_url = Column(String(1024), nullable=True)
    monthly_support = Column(Integer, nullable=True)  # Target amount in whole currency units
    current_donors = Column(Integer, default=0, nullable=False)  # Owned by the daily reconciliation job
    status = Column(String(20), default="active", nullable=False)  # 'active', 'sponsored', 'inactive'
    category_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    donations = relationship("Donation", back_populates="beneficiary")
