"""Vote ledger — one vote per (user, creation) plus the creation's cached score.

Transition per (existing, requested):

    none → up      insert up        +1
    none → down    insert down      -1
    up   → up      delete (toggle)  -1
    down → down    delete (toggle)  +1
    up   → down    update to down   -2
    down → up      update to up     +2

The vote row change and the score increment are committed together; the
score is only ever changed by an atomic ``vote_score = vote_score + delta``.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio.errors import Conflict, NotFound, ValidationError
from studio.models.creation import Creation
from studio.models.vote import Vote, VoteDirection

logger = logging.getLogger(__name__)

NO_VOTE = "none"

_SIGN = {VoteDirection.up: 1, VoteDirection.down: -1}


@dataclass
class VoteOutcome:
    vote_score: int
    user_vote: str


def parse_direction(value: Optional[str]) -> VoteDirection:
    try:
        return VoteDirection(value)
    except ValueError:
        raise ValidationError('Vote type must be "up" or "down"')


def transition(existing: Optional[VoteDirection], requested: VoteDirection) -> tuple[Optional[VoteDirection], int]:
    """Return ``(new_direction, score_delta)``; ``None`` means the vote is retracted."""
    if existing is None:
        return requested, _SIGN[requested]
    if existing == requested:
        return None, -_SIGN[requested]
    return requested, 2 * _SIGN[requested]


def cast_vote(db: Session, creation_id: str, user_id: str, direction: str) -> VoteOutcome:
    """Apply one vote request and return the creation's new score."""
    requested = parse_direction(direction)
    if not creation_id:
        raise ValidationError("Creation ID is required")
    if db.query(Creation.creation_id).filter(Creation.creation_id == creation_id).first() is None:
        raise NotFound("Creation not found")

    existing = db.query(Vote).filter(Vote.user_id == user_id, Vote.creation_id == creation_id).first()
    new_direction, delta = transition(existing.direction if existing else None, requested)

    if existing is None:
        db.add(Vote(user_id=user_id, creation_id=creation_id, direction=new_direction))
    elif new_direction is None:
        db.delete(existing)
    else:
        existing.direction = new_direction

    db.execute(
        update(Creation)
        .where(Creation.creation_id == creation_id)
        .values(vote_score=Creation.vote_score + delta)
        .execution_options(synchronize_session=False)
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent vote by %s on %s rejected", user_id, creation_id)
        raise Conflict("Vote already recorded, please retry")

    score = db.query(Creation.vote_score).filter(Creation.creation_id == creation_id).scalar() or 0
    user_vote = new_direction.value if new_direction else NO_VOTE
    logger.info("User %s voted %s on %s (delta %+d, score %d)", user_id, requested.value, creation_id, delta, score)
    return VoteOutcome(vote_score=score, user_vote=user_vote)


def votes_by_user(db: Session, user_id: Optional[str], creation_ids: list[str]) -> dict[str, str]:
    """Map creation id → the given user's own vote direction."""
    if not user_id or not creation_ids:
        return {}
    rows = db.query(Vote.creation_id, Vote.direction).filter(
        Vote.user_id == user_id,
        Vote.creation_id.in_(creation_ids),
    ).all()
    return {creation_id: direction.value for creation_id, direction in rows}
