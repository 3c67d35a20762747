"""Creation store — persisted images and videos.

Responsibilities:
- Save a creation with a snapshot of its owner (not a live join)
- Ownership-agnostic delete with a best-effort vote cascade
- Filtered, sorted, offset-paginated listing
- Maintenance: link orphaned videos to their source image, move
  provider-hosted URLs into durable storage
"""
import logging
import random
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.deps import CurrentUser
from studio.errors import NotFound, ValidationError
from studio.models.creation import Creation, CreationKind
from studio.models.vote import Vote
from studio.services import storage_service

logger = logging.getLogger(__name__)

SORT_TOP = "top"
SORT_NEW = "new"

_TITLE_ADJECTIVES = [
    "Legendary", "Majestic", "Glorious", "Supreme", "Ultimate",
    "Epic", "Magnificent", "Regal", "Distinguished", "Noble",
    "Illustrious", "Exalted", "Venerable", "Grand", "Stellar",
]
_TITLE_NOUNS = [
    "Portrait", "Icon", "Legend", "Muse", "Hero",
    "Visionary", "Star", "Original", "Classic", "Maverick",
]


def generate_title() -> str:
    return f"{random.choice(_TITLE_ADJECTIVES)} {random.choice(_TITLE_NOUNS)}"


def create(db: Session, payload: dict[str, Any], owner: CurrentUser, storage_client=None) -> Creation:
    """Persist a new creation owned by ``owner``.

    ``payload`` keys: generated_url, model, prompt, kind, original_url,
    title, source_image_id, video_chain.
    """
    generated_url = (payload.get("generated_url") or "").strip()
    if not generated_url:
        raise ValidationError("Generated image URL is required")
    model = (payload.get("model") or "").strip()
    if not model:
        raise ValidationError("Model name is required")

    try:
        kind = CreationKind(payload.get("kind") or CreationKind.image.value)
    except ValueError:
        raise ValidationError("Invalid creation type")
    is_video = kind == CreationKind.video

    creation = Creation(
        kind=kind,
        generated_url=generated_url,
        original_url=storage_service.ensure_durable_url(payload.get("original_url"), client=storage_client),
        prompt=payload.get("prompt") or "",
        model=model,
        title=payload.get("title") or generate_title(),
        owner_id=owner.id,
        owner_name=owner.name,
        owner_email=owner.email,
        owner_avatar=owner.avatar,
        vote_score=0,
        source_image_id=payload.get("source_image_id") if is_video else None,
        video_chain=payload.get("video_chain") if is_video else None,
    )
    db.add(creation)
    db.commit()
    db.refresh(creation)
    logger.info("Saved %s creation %s for model '%s' (owner %s)", kind.value, creation.creation_id, model, owner.id)
    return creation


def get(db: Session, creation_id: str) -> Creation:
    creation = db.query(Creation).filter(Creation.creation_id == creation_id).first()
    if not creation:
        raise NotFound("Creation not found")
    return creation


def delete(db: Session, creation_id: str, actor: Optional[CurrentUser] = None) -> None:
    """Remove a creation regardless of who asks, then clean up its votes.

    The vote cascade runs after the delete is committed; its failure is
    logged and never undoes the delete.
    """
    creation = get(db, creation_id)
    if actor is None or creation.owner_id != actor.id:
        logger.warning(
            "Creation %s owned by %s deleted by %s",
            creation_id, creation.owner_id, actor.id if actor else "anonymous",
        )

    db.delete(creation)
    db.commit()
    logger.info("Deleted creation %s", creation_id)

    try:
        removed = db.query(Vote).filter(Vote.creation_id == creation_id).delete(synchronize_session=False)
        db.commit()
        logger.info("Removed %d votes for deleted creation %s", removed, creation_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to remove votes for deleted creation %s", creation_id)


def _filtered(
    db: Session,
    owner_id: Optional[str] = None,
    model: Optional[str] = None,
    model_match: str = "exact",
    kind: Optional[str] = None,
):
    query = db.query(Creation).filter(Creation.model.isnot(None), Creation.model != "")
    if owner_id:
        query = query.filter(Creation.owner_id == owner_id)
    if model:
        if model_match == "contains":
            query = query.filter(Creation.model.ilike(f"%{model}%"))
        else:
            query = query.filter(Creation.model == model)
    if kind:
        query = query.filter(Creation.kind == CreationKind(kind))
    return query


def _ordered(query, sort: str):
    if sort == SORT_NEW:
        return query.order_by(Creation.created_at.desc(), Creation.creation_id.desc())
    return query.order_by(
        Creation.vote_score.desc(), Creation.created_at.desc(), Creation.creation_id.desc(),
    )


def list_creations(
    db: Session,
    owner_id: Optional[str] = None,
    model: Optional[str] = None,
    model_match: str = "exact",
    kind: Optional[str] = None,
    sort: str = SORT_TOP,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Creation], int]:
    """Return one page of creations and the total matching count."""
    query = _filtered(db, owner_id, model, model_match, kind)
    total = query.count()
    items = _ordered(query, sort).offset((page - 1) * page_size).limit(page_size).all()
    return items, total


def videos_for_image(db: Session, image_id: str, owner_id: str) -> list[Creation]:
    """Videos derived from ``image_id``, best scored first."""
    query = db.query(Creation).filter(
        Creation.kind == CreationKind.video,
        Creation.source_image_id == image_id,
        Creation.owner_id == owner_id,
    )
    return _ordered(query, SORT_TOP).all()


def link_videos(db: Session) -> dict[str, int]:
    """Attach videos that lack a ``source_image_id`` to their most likely source image."""
    videos = db.query(Creation).filter(
        Creation.kind == CreationKind.video,
        Creation.source_image_id.is_(None),
    ).all()
    logger.info("Found %d unlinked videos", len(videos))

    linked = 0
    unlinked = 0
    for video in videos:
        candidates = db.query(Creation).filter(
            Creation.kind == CreationKind.image,
            Creation.model == video.model,
        )
        if video.original_url:
            candidates = candidates.filter(Creation.original_url == video.original_url)

        source = (
            candidates.filter(Creation.created_at <= video.created_at)
            .order_by(Creation.created_at.desc())
            .first()
        )
        if source is None:
            source = candidates.first()

        if source is None:
            unlinked += 1
            logger.info("No source image for video %s (model: %s)", video.creation_id, video.model)
            continue
        video.source_image_id = source.creation_id
        linked += 1
        logger.info("Linked video %s to image %s", video.creation_id, source.creation_id)

    db.commit()
    return {"totalVideos": len(videos), "linked": linked, "unlinked": unlinked}


def migrate_to_storage(db: Session, client=None, http_client=None) -> dict[str, int]:
    """Re-upload provider-hosted creation URLs into durable storage.

    Each creation is committed on its own; a URL that cannot be fetched
    (usually expired) is counted as failed and left untouched.
    """
    if not storage_service.is_configured():
        raise ValidationError("Object storage is not configured")

    creations = db.query(Creation).order_by(Creation.created_at).all()
    results = {"total": len(creations), "migrated": 0, "alreadyStored": 0, "skipped": 0, "failed": 0}

    for creation in creations:
        changed = False

        if storage_service.is_provider_url(creation.generated_url):
            kind = creation.kind.value if creation.kind else CreationKind.image.value
            new_url = storage_service.migrate_url(
                creation.generated_url, kind=kind, client=client, http_client=http_client,
            )
            if new_url:
                creation.generated_url = new_url
                changed = True
            else:
                results["failed"] += 1
        elif "s3." in (creation.generated_url or ""):
            results["alreadyStored"] += 1

        if storage_service.is_provider_url(creation.original_url):
            new_url = storage_service.migrate_url(
                creation.original_url, kind="image", client=client, http_client=http_client,
            )
            if new_url:
                creation.original_url = new_url
                changed = True

        if changed:
            db.commit()
            results["migrated"] += 1
            logger.info("Migrated creation %s to durable storage", creation.creation_id)
        elif not storage_service.is_provider_url(creation.generated_url):
            results["skipped"] += 1

    logger.info("Storage migration complete: %s", results)
    return results
