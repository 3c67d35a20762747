"""Creation API routes — save, delete, derived videos and maintenance jobs."""
import logging

import httpx
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user, get_http_client, get_storage_client
from studio.schemas.creation import (
    CreationCreate,
    CreationOut,
    DeleteCreationResponse,
    LinkVideosResponse,
    MigrationResponse,
    SaveCreationResponse,
    VideosForImageResponse,
)
from studio.services import creation_service, feed_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=SaveCreationResponse, status_code=status.HTTP_201_CREATED)
def save_creation(
    payload: CreationCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    storage_client=Depends(get_storage_client),
):
    """Persist a generated image or video for the signed-in user."""
    creation = creation_service.create(
        db,
        {
            "generated_url": payload.generated_image,
            "original_url": payload.original_image,
            "prompt": payload.prompt,
            "model": payload.model,
            "kind": payload.type,
            "title": payload.title,
            "source_image_id": payload.source_image_id,
            "video_chain": payload.video_chain,
        },
        owner=user,
        storage_client=storage_client,
    )
    return SaveCreationResponse(creation=CreationOut.from_creation(creation))


@router.delete("/{creation_id}", response_model=DeleteCreationResponse)
def delete_creation(
    creation_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Delete a creation. Any signed-in user may delete; non-owners are logged."""
    creation_service.delete(db, creation_id, actor=user)
    return DeleteCreationResponse()


@router.get("/{creation_id}/videos", response_model=VideosForImageResponse)
def videos_for_image(
    creation_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Videos the signed-in user animated from this image."""
    videos = creation_service.videos_for_image(db, creation_id, user.id)
    items = feed_service.annotate(db, user.id, videos)
    return VideosForImageResponse(
        videos=[CreationOut.from_creation(i.creation, i.user_vote) for i in items],
    )


@router.post("/link-videos", response_model=LinkVideosResponse)
def link_videos(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Backfill ``sourceImageId`` on videos saved without one."""
    counts = creation_service.link_videos(db)
    message = (
        f"Processed {counts['totalVideos']} videos: {counts['linked']} linked, "
        f"{counts['unlinked']} could not be linked"
    )
    return LinkVideosResponse(
        message=message,
        total_videos=counts["totalVideos"],
        linked=counts["linked"],
        unlinked=counts["unlinked"],
    )


@router.post("/migrate-to-storage", response_model=MigrationResponse)
def migrate_to_storage(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    storage_client=Depends(get_storage_client),
    http_client: httpx.Client = Depends(get_http_client),
):
    """Move provider-hosted URLs into durable storage before they expire."""
    logger.info("Storage migration requested by %s", user.id)
    results = creation_service.migrate_to_storage(db, client=storage_client, http_client=http_client)
    return MigrationResponse(results=results)
