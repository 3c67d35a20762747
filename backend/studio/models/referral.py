"""Referral ORM model."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from studio.database import Base


class Referral(Base):
    __tablename__ = "referrals"

    referral_id = Column(Integer, primary_key=True, autoincrement=True)
    referrer_id = Column(String(255), nullable=False, index=True)
    referee_id = Column(String(255), nullable=False, unique=True)  # a user can be referred once
    referral_code = Column(String(16), nullable=False)
    credits_awarded = Column(Integer, nullable=False, default=0)
    signed_up_at = Column(DateTime(timezone=True), server_default=func.now())
