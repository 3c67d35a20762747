"""Order ORM model — a credit package purchase."""
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SAEnum, Integer, JSON, Numeric, String
from sqlalchemy.sql import func

from studio.database import Base, utcnow


class OrderStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    expired = "expired"


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    user_email = Column(String(255), nullable=True)
    package_id = Column(String(50), nullable=False)
    credits = Column(Integer, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(SAEnum(OrderStatus), nullable=False, default=OrderStatus.pending)
    charge_id = Column(String(100), nullable=True, index=True)
    charge_code = Column(String(50), nullable=True)
    charge_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
