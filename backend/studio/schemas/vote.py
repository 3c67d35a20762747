"""Pydantic schemas for Votes."""
from typing import Optional

from studio.schemas.common import CamelModel


class VoteRequest(CamelModel):
    creation_id: str = ""
    vote_type: Optional[str] = None


class VoteResponse(CamelModel):
    success: bool = True
    vote_score: int
    user_vote: str = "none"
