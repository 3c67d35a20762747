"""User ORM model — credit balance and referral identity."""
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from studio.database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),)

    user_id = Column(String(255), primary_key=True)  # identity from the auth provider
    credits = Column(Integer, nullable=False, default=10)
    referral_code = Column(String(16), nullable=True, unique=True)
    referral_clicks = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
