"""HTTP client for the inference provider's prediction API."""
import logging
from typing import Any, Optional

import httpx

from studio.config import settings
from studio.errors import PollError, ProviderNotConfigured

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")


class ProviderClient:
    """Thin wrapper over ``/models/{model}/predictions`` and prediction polling."""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.api_token = api_token if api_token is not None else settings.REPLICATE_API_TOKEN
        if not self.api_token:
            raise ProviderNotConfigured("Add REPLICATE_API_TOKEN to the environment")
        self.base_url = (base_url or settings.REPLICATE_BASE_URL).rstrip("/")
        self._http = httpx.Client(
            transport=transport,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            headers={"Authorization": f"Bearer {self.api_token}"},
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ProviderClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def create_prediction(self, model: str, model_input: dict[str, Any]) -> httpx.Response:
        """Submit a prediction; the raw response is returned so callers can handle 429."""
        url = f"{self.base_url}/models/{model}/predictions"
        logger.info("Submitting prediction to %s", model)
        return self._http.post(url, json={"input": model_input})

    def prediction_url(self, prediction: dict[str, Any]) -> str:
        urls = prediction.get("urls") or {}
        return urls.get("get") or f"{self.base_url}/predictions/{prediction.get('id')}"

    def get_prediction(self, url: str) -> dict[str, Any]:
        try:
            response = self._http.get(url)
        except httpx.HTTPError as e:
            logger.error("Prediction poll transport failure: %s", e)
            raise PollError(f"Poll failed: {e}")
        if response.status_code >= 400:
            logger.error("Prediction poll returned %d", response.status_code)
            raise PollError(f"Poll failed ({response.status_code})")
        try:
            return response.json()
        except ValueError:
            logger.error("Prediction poll returned a non-JSON body: %s", response.text[:200])
            raise PollError("Poll failed: unreadable response")
