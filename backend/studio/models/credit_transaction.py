"""CreditTransaction ORM model — append-only audit of balance changes."""
import enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.sql import func

from studio.database import Base


class TransactionKind(str, enum.Enum):
    debit = "debit"
    credit = "credit"


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    transaction_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    kind = Column(SAEnum(TransactionKind), nullable=False)
    amount = Column(Integer, nullable=False)
    reason = Column(String(100), nullable=False)
    balance_after = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
