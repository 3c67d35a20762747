"""Credit balance routes."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user
from studio.errors import ValidationError
from studio.schemas.credits import CreditsResponse
from studio.services import credit_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=CreditsResponse)
def get_credits(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Balance, per-kind costs and purchasable packages."""
    return CreditsResponse(
        credits=credit_service.get_balance(db, user.id),
        costs=credit_service.CREDIT_COSTS,
        packages=credit_service.CREDIT_PACKAGES,
    )


@router.post("/")
def add_credits(user: CurrentUser = Depends(get_current_user)):
    """Credits are only granted through verified payments."""
    logger.warning("Direct credit purchase attempted by %s", user.id)
    raise ValidationError("Direct credit purchase is disabled. Use the checkout flow.")
