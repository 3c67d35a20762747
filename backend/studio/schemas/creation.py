"""Pydantic schemas for Creations."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from studio.schemas.common import CamelModel, PaginationOut


class CreationCreate(CamelModel):
    original_image: Optional[str] = None
    generated_image: Optional[str] = None
    prompt: str = ""
    model: Optional[str] = None
    type: str = "image"
    title: Optional[str] = None
    source_image_id: Optional[str] = None
    video_chain: Optional[list[str]] = None


class OwnerOut(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class CreationOut(CamelModel):
    id: str
    type: str
    generated_image: str
    original_image: Optional[str] = None
    source_image_id: Optional[str] = None
    video_chain: Optional[list[str]] = None
    prompt: str = ""
    model: str
    title: Optional[str] = None
    uploaded_by: OwnerOut
    vote_score: int = 0
    user_vote: str = "none"
    created_at: Optional[datetime] = None

    @classmethod
    def from_creation(cls, creation, user_vote: str = "none") -> CreationOut:
        return cls(
            id=creation.creation_id,
            type=creation.kind.value,
            generated_image=creation.generated_url,
            original_image=creation.original_url,
            source_image_id=creation.source_image_id,
            video_chain=creation.video_chain,
            prompt=creation.prompt or "",
            model=creation.model,
            title=creation.title,
            uploaded_by=OwnerOut(
                id=creation.owner_id,
                name=creation.owner_name,
                email=creation.owner_email,
                image=creation.owner_avatar,
            ),
            vote_score=creation.vote_score or 0,
            user_vote=user_vote,
            created_at=creation.created_at,
        )


class SaveCreationResponse(CamelModel):
    success: bool = True
    creation: CreationOut


class DeleteCreationResponse(CamelModel):
    success: bool = True


class CreationListResponse(CamelModel):
    success: bool = True
    creations: list[CreationOut]
    pagination: PaginationOut


class VideosForImageResponse(CamelModel):
    success: bool = True
    videos: list[CreationOut]


class ModelSummary(CamelModel):
    name: str
    count: int
    thumbnail: Optional[str] = None
    latest_date: Optional[datetime] = None


class ModelsResponse(CamelModel):
    success: bool = True
    models: list[ModelSummary]


class LinkVideosResponse(CamelModel):
    success: bool = True
    message: str
    total_videos: int
    linked: int
    unlinked: int


class MigrationResults(CamelModel):
    total: int
    migrated: int
    already_stored: int
    skipped: int
    failed: int


class MigrationResponse(CamelModel):
    success: bool = True
    message: str = "Migration complete"
    results: MigrationResults
