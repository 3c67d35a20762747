"""Error taxonomy for the service layer.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it as ``{"detail": ...}`` with the matching status code.
"""
from typing import Optional

from fastapi import HTTPException, status

CONTENT_POLICY_MESSAGE = "Content too spicy! Try a tamer prompt or different image."


class StudioError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class Unauthorized(StudioError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "You must be signed in"


class InvalidSignature(StudioError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid signature"


class NotFound(StudioError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Conflict(StudioError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting update, please retry"


class InsufficientCredits(StudioError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, required: int, balance: Optional[int] = None):
        self.required = required
        self.balance = balance
        super().__init__(f"Insufficient credits: {required} required")


class RateLimited(StudioError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: Optional[int] = None, detail: Optional[str] = None):
        self.retry_after = retry_after
        if detail is None:
            detail = (
                f"Rate limited - retry in {retry_after}s"
                if retry_after
                else "Rate limited - please try again shortly"
            )
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(detail, headers=headers)


class ContentPolicyViolation(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = CONTENT_POLICY_MESSAGE

    def __init__(self, provider_message: str = ""):
        self.provider_message = provider_message
        super().__init__(CONTENT_POLICY_MESSAGE)


class SourceFetchFailed(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Could not fetch source image - URL may have expired"


class FetchError(StudioError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Failed to fetch file from URL"


class StorageError(StudioError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Object storage unavailable"


class PollError(StudioError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Poll failed"


class GenerationFailed(StudioError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Generation failed"


class GenerationTimedOut(GenerationFailed):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = "Generation did not finish in time"


class ProviderNotConfigured(StudioError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Generation provider is not configured"


class PaymentNotConfigured(StudioError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Payment system not configured"
