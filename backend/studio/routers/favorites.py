"""Favorite API routes."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user
from studio.schemas.creation import CreationOut
from studio.schemas.favorite import FavoritesResponse, FavoriteToggleRequest, FavoriteToggleResponse
from studio.services import favorite_service, feed_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=FavoritesResponse)
def list_favorites(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    creations = favorite_service.list_favorites(db, user.id)
    items = feed_service.annotate(db, user.id, creations)
    return FavoritesResponse(favorites=[CreationOut.from_creation(i.creation, i.user_vote) for i in items])


@router.post("/", response_model=FavoriteToggleResponse)
def toggle_favorite(
    payload: FavoriteToggleRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Add the creation to favorites, or remove it if already there."""
    favorited = favorite_service.toggle(db, user.id, payload.creation_id)
    return FavoriteToggleResponse(favorited=favorited)
