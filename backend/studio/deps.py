"""Request dependencies: caller identity and outbound clients.

Authentication happens upstream; the proxy forwards the signed-in user as
``X-User-*`` headers and these dependencies turn them into a snapshot.
"""
from dataclasses import dataclass
from typing import Iterator, Optional

import httpx
from fastapi import Header

from studio.config import settings
from studio.errors import Unauthorized
from studio.generation.provider import ProviderClient
from studio.services import storage_service


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None


def get_optional_user(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_avatar: Optional[str] = Header(None),
) -> Optional[CurrentUser]:
    if not x_user_id or not x_user_id.strip():
        return None
    return CurrentUser(
        id=x_user_id.strip(),
        name=x_user_name,
        email=x_user_email,
        avatar=x_user_avatar,
    )


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_avatar: Optional[str] = Header(None),
) -> CurrentUser:
    user = get_optional_user(x_user_id, x_user_name, x_user_email, x_user_avatar)
    if user is None:
        raise Unauthorized()
    return user


# ── Outbound clients ───────────────────────────────────────────────
# Separate dependencies so tests can swap in mock transports and stubbed S3.

def get_http_client() -> Iterator[httpx.Client]:
    client = httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True)
    try:
        yield client
    finally:
        client.close()


def get_provider_client() -> Iterator[ProviderClient]:
    client = ProviderClient()
    try:
        yield client
    finally:
        client.close()


def get_storage_client():
    """S3 client when storage is configured, else None (callers degrade)."""
    if not storage_service.is_configured():
        return None
    return storage_service.get_s3_client()
