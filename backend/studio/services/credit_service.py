"""Credit ledger — per-user integer balance.

Invariants:
- balance never goes below zero; a debit either removes the full cost or nothing
- every change is a single conditional UPDATE, never read-then-write
- users are created lazily with DEFAULT_CREDITS on first observation
- no refund when a generation fails after its debit
"""
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio.database import utcnow
from studio.errors import InsufficientCredits, ValidationError
from studio.models.credit_transaction import CreditTransaction, TransactionKind
from studio.models.user import User

logger = logging.getLogger(__name__)

CREDIT_COSTS = {
    "image": 1,
    "video": 5,
}

DEFAULT_CREDITS = 10

CREDIT_PACKAGES = [
    {"id": "starter", "credits": 10, "price": 5, "label": "10 Credits", "popular": False},
    {"id": "popular", "credits": 50, "price": 20, "label": "50 Credits", "popular": True},
    {"id": "pro", "credits": 150, "price": 50, "label": "150 Credits", "popular": False},
]


def cost_for(kind: Optional[str]) -> int:
    return CREDIT_COSTS.get(kind or "", 1)


def find_package(package_id: str) -> Optional[dict]:
    return next((p for p in CREDIT_PACKAGES if p["id"] == package_id), None)


def get_or_create(db: Session, user_id: str) -> User:
    """Return the user row, inserting it with the default balance if missing."""
    user = db.get(User, user_id)
    if user is not None:
        return user

    db.add(User(user_id=user_id, credits=DEFAULT_CREDITS, referral_clicks=0))
    try:
        db.commit()
        logger.info("Created user %s with %d starting credits", user_id, DEFAULT_CREDITS)
    except IntegrityError:
        # Another request inserted the row first
        db.rollback()
    return db.get(User, user_id)


def get_balance(db: Session, user_id: str) -> int:
    return get_or_create(db, user_id).credits


def has_sufficient(db: Session, user_id: str, kind: str = "image") -> bool:
    return get_balance(db, user_id) >= cost_for(kind)


def _current_balance(db: Session, user_id: str) -> int:
    return db.scalar(select(User.credits).where(User.user_id == user_id))


def _conditional_decrement(db: Session, user_id: str, cost: int) -> int:
    result = db.execute(
        update(User)
        .where(User.user_id == user_id, User.credits >= cost)
        .values(credits=User.credits - cost, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _increment(db: Session, user_id: str, amount: int) -> int:
    result = db.execute(
        update(User)
        .where(User.user_id == user_id)
        .values(credits=User.credits + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def debit(db: Session, user_id: str, kind: str = "image") -> int:
    """Charge one generation of ``kind``; returns the new balance."""
    cost = cost_for(kind)

    updated = _conditional_decrement(db, user_id, cost)
    if not updated:
        db.rollback()
        if db.get(User, user_id) is None:
            get_or_create(db, user_id)
            updated = _conditional_decrement(db, user_id, cost)

    if not updated:
        db.rollback()
        balance = _current_balance(db, user_id)
        logger.info("Debit of %d refused for user %s (balance %s)", cost, user_id, balance)
        raise InsufficientCredits(required=cost, balance=balance)

    balance = _current_balance(db, user_id)
    db.add(CreditTransaction(
        user_id=user_id,
        kind=TransactionKind.debit,
        amount=cost,
        reason=f"generation:{kind}",
        balance_after=balance,
    ))
    db.commit()
    logger.info("Debited %d credits from user %s for %s, balance %d", cost, user_id, kind, balance)
    return balance


def credit(db: Session, user_id: str, amount: int, reason: str = "bonus", commit: bool = True) -> int:
    """Add ``amount`` credits; with ``commit=False`` the caller owns the transaction."""
    if amount <= 0:
        raise ValidationError("Credit amount must be positive")

    get_or_create(db, user_id)
    _increment(db, user_id, amount)
    balance = _current_balance(db, user_id)
    db.add(CreditTransaction(
        user_id=user_id,
        kind=TransactionKind.credit,
        amount=amount,
        reason=reason,
        balance_after=balance,
    ))
    if commit:
        db.commit()
    logger.info("Credited %d credits to user %s (%s), balance %d", amount, user_id, reason, balance)
    return balance
