"""Referral routes — click tracking is public, everything else needs a user."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user, get_optional_user
from studio.errors import Unauthorized, ValidationError
from studio.schemas.referral import (
    RecentReferral,
    ReferralAction,
    ReferralActionResponse,
    ReferralInfoResponse,
    ReferralStats,
)
from studio.services import referral_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=ReferralInfoResponse)
def get_referral_info(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    info = referral_service.get_info(db, user.id)
    return ReferralInfoResponse(
        referral_code=info["referral_code"],
        stats=ReferralStats(
            clicks=info["clicks"], signups=info["signups"], credits_earned=info["credits_earned"],
        ),
        rewards=referral_service.REFERRAL_REWARDS,
        recent_referrals=[RecentReferral(**r) for r in info["recent"]],
    )


@router.post("/", response_model=ReferralActionResponse)
def referral_action(
    payload: ReferralAction,
    db: Session = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    """``click`` records a visit through a share link; ``complete`` rewards a signup."""
    if payload.action == "click":
        referral_service.track_click(db, payload.referral_code)
        return ReferralActionResponse()

    if user is None:
        raise Unauthorized()
    if payload.action == "complete":
        return ReferralActionResponse(**referral_service.complete(db, user.id, payload.referral_code))
    raise ValidationError("Invalid action")
