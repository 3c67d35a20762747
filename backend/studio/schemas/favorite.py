"""Pydantic schemas for Favorites."""
from studio.schemas.common import CamelModel
from studio.schemas.creation import CreationOut


class FavoriteToggleRequest(CamelModel):
    creation_id: str = ""


class FavoriteToggleResponse(CamelModel):
    success: bool = True
    favorited: bool


class FavoritesResponse(CamelModel):
    success: bool = True
    favorites: list[CreationOut]
