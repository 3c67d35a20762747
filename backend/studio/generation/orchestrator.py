"""Generation orchestrator — submit → poll → classify → relocate.

One call drives a single prediction through
``submitted → polling → {succeeded, failed, canceled, timed_out}``:

- submission picks the image or video backend from ``mode``
- an image submission that is rate limited is retried exactly once after
  the provider's ``retry_after`` (plus one second) or a default wait
- polling runs at a fixed interval and is bounded by an attempt count, not
  wall-clock time; a transport failure while polling aborts immediately
- failures whose message mentions a policy keyword become
  ContentPolicyViolation, everything else GenerationFailed
- successful output is copied into object storage, falling back to the
  provider URL when that is not possible

The call blocks for the whole poll; there is no cancellation once submitted.
"""
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from studio.config import settings
from studio.errors import (
    ContentPolicyViolation,
    GenerationFailed,
    GenerationTimedOut,
    RateLimited,
    ValidationError,
)
from studio.generation.backends import image, video
from studio.generation.provider import TERMINAL_STATUSES, ProviderClient
from studio.services import storage_service

logger = logging.getLogger(__name__)

# ── Backend registry ───────────────────────────────────────────────
BACKENDS = {
    image.MODE: image,
    video.MODE: video,
}

POLICY_KEYWORDS = ("nsfw", "safety", "inappropriate", "violat", "policy", "sexual", "nude")


@dataclass
class PollOutcome:
    prediction: dict[str, Any]
    attempts: int
    timed_out: bool = False

    @property
    def status(self) -> str:
        return self.prediction.get("status") or "unknown"


@dataclass
class GenerationResult:
    session_id: str
    mode: str
    status: str
    output: Optional[str] = None
    provider_output: Optional[str] = None
    prediction_id: Optional[str] = None
    attempts: int = 0
    transitions: list[str] = field(default_factory=list)


def is_policy_violation(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(keyword in text for keyword in POLICY_KEYWORDS)


def _retry_after(response: httpx.Response) -> Optional[int]:
    try:
        value = response.json().get("retry_after")
    except ValueError:
        return None
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def validate_request(reference_images: Optional[list[str]], prompt: Optional[str], mode: str) -> None:
    if not reference_images:
        raise ValidationError("No image provided")
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt required")
    if mode not in BACKENDS:
        raise ValidationError(f"Unknown mode: {mode}")


def submit(
    client: ProviderClient,
    backend,
    model_input: dict[str, Any],
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any]:
    """Create the prediction, handling provider backpressure; returns the prediction JSON."""
    response = client.create_prediction(backend.model(), model_input)

    if response.status_code == 429:
        retry_after = _retry_after(response)
        if not backend.RETRY_ON_RATE_LIMIT:
            raise RateLimited(retry_after=retry_after or video.DEFAULT_RETRY_AFTER)

        wait = (retry_after if retry_after is not None else settings.RATE_LIMIT_DEFAULT_WAIT_SECONDS) + 1
        logger.warning("Rate limited by provider, retrying once in %ds", wait)
        sleep(wait)
        response = client.create_prediction(backend.model(), model_input)
        if response.status_code == 429:
            raise RateLimited(retry_after=_retry_after(response) or wait)

    if response.status_code >= 400:
        logger.error("Provider rejected submission (%d): %s", response.status_code, response.text[:500])
        raise GenerationFailed(f"Provider API error ({response.status_code})")

    try:
        return response.json()
    except ValueError:
        logger.error("Provider accepted submission with a non-JSON body: %s", response.text[:200])
        raise GenerationFailed("Provider API error (unreadable response)")


def poll(
    prediction: dict[str, Any],
    client: ProviderClient,
    max_attempts: int,
    interval: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PollOutcome:
    """Query the prediction until it is terminal or ``max_attempts`` polls were made.

    At the ceiling the last seen prediction is returned with ``timed_out`` set.
    """
    interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
    url = client.prediction_url(prediction)
    result = prediction
    attempts = 0

    while result.get("status") not in TERMINAL_STATUSES and attempts < max_attempts:
        sleep(interval)
        result = client.get_prediction(url)
        attempts += 1

    timed_out = result.get("status") not in TERMINAL_STATUSES
    return PollOutcome(prediction=result, attempts=attempts, timed_out=timed_out)


def _first_output(output: Any) -> Optional[str]:
    if isinstance(output, list):
        return output[0] if output else None
    return output


def classify(outcome: PollOutcome, mode: str) -> str:
    """Return the provider output URL or raise the matching failure."""
    if outcome.status == "succeeded":
        output = _first_output(outcome.prediction.get("output"))
        if not output:
            raise GenerationFailed("Provider returned no output")
        return output

    if outcome.timed_out:
        raise GenerationTimedOut(
            f"Generation still '{outcome.status}' after {outcome.attempts} polls"
        )

    message = outcome.prediction.get("error") or ""
    if is_policy_violation(message):
        raise ContentPolicyViolation(provider_message=message)
    default = "Video generation failed" if mode == video.MODE else "Generation failed"
    raise GenerationFailed(message or default)


def run_generation(
    reference_images: list[str],
    prompt: str,
    mode: str = "image",
    num_frames: Optional[int] = None,
    client: Optional[ProviderClient] = None,
    http_client: Optional[httpx.Client] = None,
    storage_client=None,
    sleep: Callable[[float], None] = time.sleep,
    model_input: Optional[dict[str, Any]] = None,
) -> GenerationResult:
    """Run one generation request end to end.

    ``model_input`` is the backend input when the caller already built it.
    """
    validate_request(reference_images, prompt, mode)
    backend = BACKENDS[mode]
    session_id = uuid.uuid4().hex[:8]
    result = GenerationResult(session_id=session_id, mode=mode, status="submitted")

    if model_input is None:
        model_input = backend.prepare(reference_images, prompt, num_frames, http_client)

    owns_client = client is None
    client = client or ProviderClient()
    try:
        prediction = submit(client, backend, model_input, sleep=sleep)
        result.prediction_id = prediction.get("id")
        result.transitions.append("submitted")
        logger.info("[Session %s] %s prediction %s submitted", session_id, mode, result.prediction_id)

        result.status = "polling"
        result.transitions.append("polling")
        outcome = poll(prediction, client, backend.max_poll_attempts(), sleep=sleep)
    finally:
        if owns_client:
            client.close()

    result.attempts = outcome.attempts
    result.status = "timed_out" if outcome.timed_out else outcome.status
    result.transitions.append(result.status)
    logger.info(
        "[Session %s] Prediction %s finished as %s after %d polls",
        session_id, result.prediction_id, result.status, outcome.attempts,
    )

    try:
        provider_output = classify(outcome, mode)
    except ContentPolicyViolation as e:
        logger.warning("[Session %s] Content policy rejection: %s", session_id, e.provider_message)
        raise
    except GenerationFailed as e:
        logger.error("[Session %s] Generation failed: %s", session_id, e.detail)
        raise

    result.provider_output = provider_output
    result.output = storage_service.relocate(
        provider_output, kind=mode, client=storage_client, http_client=http_client,
    )
    return result
