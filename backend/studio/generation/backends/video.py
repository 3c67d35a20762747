"""Video backend — animates a single still into a short clip.

The provider needs the frame inline, so a remote source image is fetched
and re-encoded as a data URL before anything is submitted.
"""
import logging
from typing import Any, Optional

from studio.config import settings
from studio.errors import FetchError, SourceFetchFailed
from studio.services import storage_service

logger = logging.getLogger(__name__)

MODE = "video"
CREDIT_KIND = "video"
RETRY_ON_RATE_LIMIT = False

DEFAULT_NUM_FRAMES = 81
FRAMES_PER_SECOND = 16
DEFAULT_RETRY_AFTER = 10


def model() -> str:
    return settings.VIDEO_MODEL


def max_poll_attempts() -> int:
    return settings.VIDEO_MAX_POLL_ATTEMPTS


def inline_source(image: str, http_client=None) -> str:
    if not storage_service.is_remote_url(image):
        return image
    logger.info("Fetching source image for video generation")
    try:
        return storage_service.fetch_as_data_url(image, http_client)
    except FetchError:
        raise SourceFetchFailed()


def prepare(reference_images: list[str], prompt: str, num_frames: Optional[int] = None,
            http_client=None) -> dict[str, Any]:
    """Build the provider input for image-to-video."""
    frames = num_frames or DEFAULT_NUM_FRAMES
    logger.info("Generating video with %d frames (~%.1fs)", frames, frames / FRAMES_PER_SECOND)
    return {
        "image": inline_source(reference_images[0], http_client),
        "prompt": prompt,
        "go_fast": False,
        "num_frames": frames,
        "resolution": "480p",
        "sample_shift": 12,
        "frames_per_second": FRAMES_PER_SECOND,
        "interpolate_output": True,
        "enable_safety_checker": False,
    }
