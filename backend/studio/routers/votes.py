"""Vote API routes."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user
from studio.schemas.vote import VoteRequest, VoteResponse
from studio.services import vote_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/vote", response_model=VoteResponse)
def vote(
    payload: VoteRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Cast, switch or retract the caller's vote on a creation."""
    outcome = vote_service.cast_vote(db, payload.creation_id, user.id, payload.vote_type)
    return VoteResponse(vote_score=outcome.vote_score, user_vote=outcome.user_vote)
