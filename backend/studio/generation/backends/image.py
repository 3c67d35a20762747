"""Image backend — reference photo(s) plus prompt to a single edited image.

The prompt always gets APPEARANCE_CLAUSE appended so the subject keeps
their likeness across edits.
"""
from typing import Any, Optional

from studio.config import settings

MODE = "image"
CREDIT_KIND = "image"
RETRY_ON_RATE_LIMIT = True

APPEARANCE_CLAUSE = (
    "IMPORTANT: Keep the model's face, body, hair, and overall appearance exactly "
    "identical to the original image. Do not change their facial features, skin tone, "
    "hair color, hairstyle, or body proportions. Preserve their exact likeness."
)


def model() -> str:
    return settings.IMAGE_MODEL


def max_poll_attempts() -> int:
    return settings.IMAGE_MAX_POLL_ATTEMPTS


def augment_prompt(prompt: str) -> str:
    return f"{prompt.strip()} {APPEARANCE_CLAUSE}"


def prepare(reference_images: list[str], prompt: str, num_frames: Optional[int] = None,
            http_client=None) -> dict[str, Any]:
    """Build the provider input for an image edit."""
    return {
        "image_input": list(reference_images),
        "prompt": augment_prompt(prompt),
        "size": "2K",
        "width": 2048,
        "height": 2048,
        "max_images": 1,
        "aspect_ratio": "1:1",
        "enhance_prompt": True,
        "sequential_image_generation": "disabled",
    }
