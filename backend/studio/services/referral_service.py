"""Referral program — share codes, click tracking, signup rewards."""
import logging
import secrets
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio.errors import NotFound, ValidationError
from studio.models.referral import Referral
from studio.models.user import User
from studio.services import credit_service

logger = logging.getLogger(__name__)

REFERRAL_REWARDS = {
    "referrer": 10,
    "referee": 5,
}

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no 0/O or 1/I
CODE_LENGTH = 6
_MAX_CODE_ATTEMPTS = 5


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def ensure_code(db: Session, user_id: str) -> User:
    """Return the user with a referral code, assigning one on first use."""
    user = credit_service.get_or_create(db, user_id)
    attempts = 0
    while not user.referral_code:
        attempts += 1
        user.referral_code = generate_code()
        try:
            db.commit()
            logger.info("Assigned referral code to user %s", user_id)
        except IntegrityError:
            db.rollback()
            if attempts >= _MAX_CODE_ATTEMPTS:
                raise
            user = db.get(User, user_id)
    return user


def track_click(db: Session, code: Optional[str]) -> None:
    if not code:
        raise ValidationError("Referral code required")
    updated = db.execute(
        update(User)
        .where(User.referral_code == code)
        .values(referral_clicks=User.referral_clicks + 1)
        .execution_options(synchronize_session=False)
    ).rowcount
    if not updated:
        db.rollback()
        raise NotFound("Invalid referral code")
    db.commit()


def complete(db: Session, user_id: str, code: Optional[str]) -> dict[str, Any]:
    """Reward a new user and their referrer.

    Soft failures (no code, unknown code, own code, already referred) are
    reported in the message rather than raised.
    """
    if not code:
        return {"success": True, "message": "No referral code provided"}

    referrer = db.query(User).filter(User.referral_code == code).first()
    if referrer is None:
        return {"success": True, "message": "Invalid referral code"}
    if referrer.user_id == user_id:
        return {"success": True, "message": "Cannot use your own referral"}
    if db.query(Referral).filter(Referral.referee_id == user_id).first() is not None:
        return {"success": True, "message": "Already referred"}

    referrer_id = referrer.user_id
    credit_service.get_or_create(db, user_id)

    db.add(Referral(
        referrer_id=referrer_id,
        referee_id=user_id,
        referral_code=code,
        credits_awarded=REFERRAL_REWARDS["referrer"],
    ))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        return {"success": True, "message": "Already referred"}

    credit_service.credit(db, referrer_id, REFERRAL_REWARDS["referrer"], reason="referral", commit=False)
    credit_service.credit(db, user_id, REFERRAL_REWARDS["referee"], reason="referral", commit=False)
    db.commit()
    logger.info("Referral completed: %s referred %s", referrer_id, user_id)

    reward = REFERRAL_REWARDS["referee"]
    return {
        "success": True,
        "creditsAwarded": reward,
        "message": f"You earned {reward} bonus credits!",
    }


def get_info(db: Session, user_id: str) -> dict[str, Any]:
    user = ensure_code(db, user_id)
    signups, earned = db.query(
        func.count(Referral.referral_id),
        func.coalesce(func.sum(Referral.credits_awarded), 0),
    ).filter(Referral.referrer_id == user_id).one()

    recent = (
        db.query(Referral)
        .filter(Referral.referrer_id == user_id)
        .order_by(Referral.signed_up_at.desc(), Referral.referral_id.desc())
        .limit(5)
        .all()
    )
    return {
        "referral_code": user.referral_code,
        "clicks": user.referral_clicks or 0,
        "signups": signups,
        "credits_earned": int(earned),
        "recent": [{"date": r.signed_up_at, "credits": r.credits_awarded} for r in recent],
    }
