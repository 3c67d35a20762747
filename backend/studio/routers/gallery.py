"""Read-side routes — personal gallery, public feed and model groupings."""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user, get_optional_user
from studio.schemas.common import PaginationOut
from studio.schemas.creation import CreationListResponse, CreationOut, ModelsResponse, ModelSummary
from studio.services import feed_service
from studio.services.feed_service import FeedPage

logger = logging.getLogger(__name__)
router = APIRouter()

SortOrder = Literal["top", "new"]
KindFilter = Literal["image", "video", "all"]


def _to_response(result: FeedPage) -> CreationListResponse:
    p = result.pagination
    return CreationListResponse(
        creations=[CreationOut.from_creation(i.creation, i.user_vote) for i in result.items],
        pagination=PaginationOut(
            page=p.page, limit=p.limit, total=p.total, total_pages=p.total_pages, has_more=p.has_more,
        ),
    )


def _kind(value: Optional[str]) -> Optional[str]:
    return None if value in (None, "all") else value


@router.get("/gallery", response_model=CreationListResponse)
def gallery(
    page: int = Query(1),
    limit: int = Query(feed_service.DEFAULT_LIMIT),
    model: Optional[str] = Query(None),
    type: Optional[KindFilter] = Query(None),
    sort: SortOrder = Query("top"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """The signed-in user's own creations."""
    result = feed_service.query(
        db, viewer_id=user.id, owner_id=user.id, model=model, kind=_kind(type), sort=sort, page=page, limit=limit,
    )
    return _to_response(result)


@router.get("/feed", response_model=CreationListResponse)
def feed(
    page: int = Query(1),
    limit: int = Query(feed_service.DEFAULT_LIMIT),
    model: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive model substring"),
    owner: Optional[str] = Query(None),
    type: Optional[KindFilter] = Query(None),
    sort: SortOrder = Query("top"),
    db: Session = Depends(get_db),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
):
    """Everyone's creations; anonymous viewers see ``userVote: none`` everywhere."""
    result = feed_service.query(
        db,
        viewer_id=viewer.id if viewer else None,
        owner_id=owner,
        model=search or model,
        model_match="contains" if search else "exact",
        kind=_kind(type),
        sort=sort,
        page=page,
        limit=limit,
    )
    return _to_response(result)


@router.get("/models", response_model=ModelsResponse)
def models(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
):
    """The viewer's creations grouped by model label; empty when signed out."""
    if viewer is None:
        return ModelsResponse(models=[])
    groups = feed_service.list_models(db, viewer.id, search)
    return ModelsResponse(models=[ModelSummary(**g) for g in groups])
