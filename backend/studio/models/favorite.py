"""Favorite ORM model."""
from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from studio.database import Base, utcnow


class Favorite(Base):
    __tablename__ = "favorites"

    user_id = Column(String(255), primary_key=True)
    creation_id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
