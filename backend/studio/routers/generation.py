"""Generation API routes — credit check, debit, then the blocking provider run."""
import logging

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user, get_http_client, get_provider_client, get_storage_client
from studio.errors import InsufficientCredits, ValidationError
from studio.generation import orchestrator
from studio.generation.provider import ProviderClient
from studio.schemas.generation import (
    ExtractFrameRequest,
    ExtractFrameResponse,
    GenerateRequest,
    GenerateResponse,
)
from studio.services import credit_service, storage_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate", response_model=GenerateResponse)
def generate(
    payload: GenerateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    provider: ProviderClient = Depends(get_provider_client),
    http_client: httpx.Client = Depends(get_http_client),
    storage_client=Depends(get_storage_client),
):
    """Generate an image or video; the credits are spent even if the provider fails.

    The provider input is built before the debit, so an unreadable video
    source is rejected without charging.
    """
    orchestrator.validate_request(payload.reference_images, payload.prompt, payload.mode)
    backend = orchestrator.BACKENDS[payload.mode]

    if not credit_service.has_sufficient(db, user.id, backend.CREDIT_KIND):
        raise InsufficientCredits(
            required=credit_service.cost_for(backend.CREDIT_KIND),
            balance=credit_service.get_balance(db, user.id),
        )
    model_input = backend.prepare(payload.reference_images, payload.prompt, payload.num_frames, http_client)
    remaining = credit_service.debit(db, user.id, backend.CREDIT_KIND)

    result = orchestrator.run_generation(
        payload.reference_images,
        payload.prompt,
        mode=payload.mode,
        num_frames=payload.num_frames,
        client=provider,
        http_client=http_client,
        storage_client=storage_client,
        model_input=model_input,
    )
    return GenerateResponse(output=result.output, mode=result.mode, credits_remaining=remaining)


@router.post("/extract-frame", response_model=ExtractFrameResponse)
def extract_frame(
    payload: ExtractFrameRequest,
    user: CurrentUser = Depends(get_current_user),
    http_client: httpx.Client = Depends(get_http_client),
):
    """Proxy a video through the server as a data URL so the browser can read frames from it."""
    if not payload.video_url:
        raise ValidationError("Video URL required")
    data_url = storage_service.fetch_as_data_url(payload.video_url, http_client, default_type="video/mp4")
    return ExtractFrameResponse(video_data_url=data_url)
