"""Vote ORM model — one row per (voter, creation)."""
import enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, String
from sqlalchemy.sql import func

from studio.database import Base, utcnow


class VoteDirection(str, enum.Enum):
    up = "up"
    down = "down"


class Vote(Base):
    __tablename__ = "votes"

    user_id = Column(String(255), primary_key=True)
    # No FK: removing a creation cleans its votes up separately
    creation_id = Column(String(36), primary_key=True, index=True)
    direction = Column(SAEnum(VoteDirection), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
