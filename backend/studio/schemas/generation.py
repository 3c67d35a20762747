"""Pydantic schemas for generation requests."""
from typing import Optional

from pydantic import Field

from studio.schemas.common import CamelModel


class GenerateRequest(CamelModel):
    reference_images: list[str] = []
    prompt: str = ""
    mode: str = "image"
    num_frames: Optional[int] = Field(None, ge=1, le=241)


class GenerateResponse(CamelModel):
    success: bool = True
    output: str
    mode: str
    credits_remaining: int


class ExtractFrameRequest(CamelModel):
    video_url: str = ""


class ExtractFrameResponse(CamelModel):
    success: bool = True
    video_data_url: str
