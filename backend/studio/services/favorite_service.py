"""Favorites — a per-user bookmark set over creations."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio.errors import NotFound, ValidationError
from studio.models.creation import Creation
from studio.models.favorite import Favorite

logger = logging.getLogger(__name__)


def is_favorite(db: Session, user_id: str, creation_id: str) -> bool:
    return db.get(Favorite, (user_id, creation_id)) is not None


def toggle(db: Session, user_id: str, creation_id: str) -> bool:
    """Flip the favorite flag; returns True when the creation is now a favorite."""
    if not creation_id:
        raise ValidationError("Creation ID is required")

    existing = db.get(Favorite, (user_id, creation_id))
    if existing is not None:
        db.delete(existing)
        db.commit()
        logger.info("User %s unfavorited %s", user_id, creation_id)
        return False

    if db.query(Creation.creation_id).filter(Creation.creation_id == creation_id).first() is None:
        raise NotFound("Creation not found")

    db.add(Favorite(user_id=user_id, creation_id=creation_id))
    try:
        db.commit()
    except IntegrityError:
        # A parallel request already added it
        db.rollback()
    logger.info("User %s favorited %s", user_id, creation_id)
    return True


def list_favorites(db: Session, user_id: str) -> list[Creation]:
    """Favorited creations, most recently favorited first; deleted ones are skipped."""
    favorites = (
        db.query(Favorite)
        .filter(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc())
        .all()
    )
    if not favorites:
        return []

    ids = [f.creation_id for f in favorites]
    creations = {c.creation_id: c for c in db.query(Creation).filter(Creation.creation_id.in_(ids)).all()}
    return [creations[f.creation_id] for f in favorites if f.creation_id in creations]
