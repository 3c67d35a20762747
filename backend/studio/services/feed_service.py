"""Feed and gallery reads — paginated creations annotated with the viewer's vote."""
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from studio.models.creation import Creation, CreationKind
from studio.services import creation_service, vote_service
from studio.services.vote_service import NO_VOTE

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


@dataclass
class FeedItem:
    creation: Creation
    user_vote: str = NO_VOTE


@dataclass
class FeedPage:
    items: list[FeedItem]
    pagination: Pagination


def normalize_paging(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    page = 1 if page is None else max(page, 1)
    limit = DEFAULT_LIMIT if limit is None else min(max(limit, 1), MAX_LIMIT)
    return page, limit


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
        has_more=page * limit < total,
    )


def annotate(db: Session, viewer_id: Optional[str], creations: list[Creation]) -> list[FeedItem]:
    """Attach the viewer's own vote to each creation; other voters are never exposed."""
    votes = vote_service.votes_by_user(db, viewer_id, [c.creation_id for c in creations])
    return [FeedItem(creation=c, user_vote=votes.get(c.creation_id, NO_VOTE)) for c in creations]


def query(
    db: Session,
    viewer_id: Optional[str],
    owner_id: Optional[str] = None,
    model: Optional[str] = None,
    kind: Optional[str] = None,
    sort: str = creation_service.SORT_TOP,
    page: Optional[int] = 1,
    limit: Optional[int] = DEFAULT_LIMIT,
    model_match: str = "exact",
) -> FeedPage:
    page, limit = normalize_paging(page, limit)
    creations, total = creation_service.list_creations(
        db,
        owner_id=owner_id,
        model=model,
        model_match=model_match,
        kind=kind,
        sort=sort,
        page=page,
        page_size=limit,
    )
    return FeedPage(items=annotate(db, viewer_id, creations), pagination=paginate(page, limit, total))


def list_models(db: Session, owner_id: str, search: Optional[str] = None) -> list[dict[str, Any]]:
    """Group the owner's creations by model label.

    The thumbnail is the best scored image, or the first item of any kind
    when the group holds only videos. Groups are ordered by size, then by
    most recent creation.
    """
    rows = (
        db.query(Creation)
        .filter(Creation.owner_id == owner_id, Creation.model.isnot(None), Creation.model != "")
        .order_by(Creation.vote_score.desc(), Creation.created_at.desc())
    )
    if search:
        rows = rows.filter(Creation.model.ilike(f"%{search}%"))

    groups: dict[str, dict[str, Any]] = {}
    for creation in rows.all():
        group = groups.setdefault(creation.model, {
            "name": creation.model,
            "count": 0,
            "thumbnail": None,
            "first_item": creation.generated_url,
            "latest_date": creation.created_at,
        })
        group["count"] += 1
        if group["thumbnail"] is None and creation.kind != CreationKind.video:
            group["thumbnail"] = creation.generated_url
        if creation.created_at and (group["latest_date"] is None or creation.created_at > group["latest_date"]):
            group["latest_date"] = creation.created_at

    models = [
        {
            "name": g["name"],
            "count": g["count"],
            "thumbnail": g["thumbnail"] or g["first_item"],
            "latest_date": g["latest_date"],
        }
        for g in groups.values()
    ]
    models.sort(key=lambda m: m["latest_date"].timestamp() if m["latest_date"] else 0, reverse=True)
    models.sort(key=lambda m: m["count"], reverse=True)
    return models
