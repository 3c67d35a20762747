"""Pydantic schemas for the referral program."""
from datetime import datetime
from typing import Optional

from studio.schemas.common import CamelModel


class ReferralAction(CamelModel):
    action: str
    referral_code: Optional[str] = None


class ReferralActionResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    credits_awarded: Optional[int] = None


class ReferralStats(CamelModel):
    clicks: int
    signups: int
    credits_earned: int


class RecentReferral(CamelModel):
    date: Optional[datetime] = None
    credits: int


class ReferralInfoResponse(CamelModel):
    success: bool = True
    referral_code: str
    stats: ReferralStats
    rewards: dict[str, int]
    recent_referrals: list[RecentReferral]
