"""Object storage uploader — persists generated media to S3.

Accepts raw bytes, ``data:`` URLs, bare base64 strings or remote URLs and
returns a durable public URL. When storage credentials are absent callers
keep the original (possibly ephemeral) URL instead of failing.
"""
import base64
import binascii
import logging
import re
import secrets
import string
import threading
import time
from typing import Optional, Union

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from studio.config import settings
from studio.errors import FetchError, StorageError, ValidationError

logger = logging.getLogger(__name__)

_KEY_ALPHABET = string.ascii_lowercase + string.digits
_DATA_URL_RE = re.compile(r"^data:([^;,]+)?(;base64)?,", re.IGNORECASE)
PROVIDER_HOSTS = ("replicate.delivery", "replicate.com")

_s3_client = None
_s3_lock = threading.Lock()


def is_configured() -> bool:
    return bool(settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY and settings.AWS_S3_BUCKET)


def get_s3_client():
    """Process-wide S3 client, created on first use and reused afterwards."""
    global _s3_client
    if _s3_client is None:
        with _s3_lock:
            if _s3_client is None:
                _s3_client = boto3.client(
                    "s3",
                    region_name=settings.AWS_REGION,
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                )
    return _s3_client


def reset_s3_client() -> None:
    global _s3_client
    _s3_client = None


def generate_key(prefix: str, extension: str) -> str:
    """Build ``prefix/<epoch-ms>-<random>.ext``; unique with high probability only."""
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(6))
    return f"{prefix}/{timestamp}-{suffix}.{extension}"


def get_content_type(data, kind: str = "image") -> str:
    if isinstance(data, str):
        match = _DATA_URL_RE.match(data)
        if match and match.group(1):
            return match.group(1)
    return "video/mp4" if kind == "video" else "image/jpeg"


def public_url(key: str) -> str:
    return f"https://{settings.AWS_S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"


def is_provider_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    return any(host in url for host in PROVIDER_HOSTS)


def is_remote_url(data) -> bool:
    return isinstance(data, str) and data.startswith(("http://", "https://"))


def _http_client() -> httpx.Client:
    return httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True)


def fetch(url: str, http_client: Optional[httpx.Client] = None) -> httpx.Response:
    """GET ``url``; transport errors and non-2xx responses raise FetchError."""
    client = http_client or _http_client()
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        logger.warning("Fetch of %s failed: %s", url[:80], e)
        raise FetchError(f"Failed to fetch file from URL: {e}")
    finally:
        if http_client is None:
            client.close()
    if response.status_code >= 400:
        logger.warning("Fetch of %s returned %d", url[:80], response.status_code)
        raise FetchError(f"Failed to fetch file from URL ({response.status_code})")
    return response


def decode_payload(data: Union[bytes, str], http_client: Optional[httpx.Client] = None) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str) or not data:
        raise ValidationError("Upload data is empty")

    if data.startswith("data:"):
        _, _, encoded = data.partition(",")
    elif is_remote_url(data):
        return fetch(data, http_client).content
    else:
        encoded = data

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Upload data is not valid base64")


def upload(data: Union[bytes, str], key: str, content_type: str, client=None,
           http_client: Optional[httpx.Client] = None) -> str:
    """Write ``data`` under ``key`` and return its public URL."""
    body = decode_payload(data, http_client)
    s3 = client or get_s3_client()
    try:
        s3.put_object(Bucket=settings.AWS_S3_BUCKET, Key=key, Body=body, ContentType=content_type)
    except (ClientError, BotoCoreError) as e:
        logger.error("S3 put_object failed for %s: %s", key, e)
        raise StorageError(f"Failed to store {key}")
    url = public_url(key)
    logger.info("Uploaded %d bytes to %s", len(body), url)
    return url


def fetch_as_data_url(url: str, http_client: Optional[httpx.Client] = None, default_type: str = "image/jpeg") -> str:
    response = fetch(url, http_client)
    content_type = response.headers.get("content-type") or default_type
    content_type = content_type.split(";")[0].strip() or default_type
    return f"data:{content_type};base64,{base64.b64encode(response.content).decode('ascii')}"


def _layout(kind: str) -> tuple[str, str, str]:
    if kind == "video":
        return "videos", "mp4", "video/mp4"
    return "images", "jpg", "image/jpeg"


def relocate(remote_url: str, kind: str = "image", client=None,
             http_client: Optional[httpx.Client] = None) -> str:
    """Copy a provider result into storage; any failure keeps ``remote_url``."""
    if not is_configured():
        logger.info("Storage not configured, keeping provider URL")
        return remote_url

    folder, extension, content_type = _layout(kind)
    try:
        body = fetch(remote_url, http_client).content
        return upload(body, generate_key(folder, extension), content_type, client=client)
    except (FetchError, StorageError) as e:
        logger.warning("Relocation of %s failed, keeping provider URL: %s", kind, e.detail)
        return remote_url


def migrate_url(url: str, kind: str = "image", client=None,
                http_client: Optional[httpx.Client] = None) -> Optional[str]:
    """Like ``relocate`` but returns None on failure so callers can count it."""
    folder, extension, content_type = _layout(kind)
    try:
        body = fetch(url, http_client).content
        return upload(body, generate_key(folder, extension), content_type, client=client)
    except (FetchError, StorageError) as e:
        logger.warning("Migration failed for %s: %s", url[:50], e.detail)
        return None


def ensure_durable_url(data: Optional[str], folder: str = "originals", client=None) -> Optional[str]:
    """Return a URL safe to persist for an uploaded original image.

    Remote URLs pass through. Inline data is uploaded when storage is
    configured; otherwise it is dropped rather than stored in the database.
    """
    if not data:
        return None
    if is_remote_url(data):
        return data
    if not is_configured() or not data.startswith("data:"):
        return None
    try:
        return upload(data, generate_key(folder, "jpg"), get_content_type(data, "image"), client=client)
    except (StorageError, ValidationError) as e:
        logger.warning("Failed to upload original image: %s", e.detail)
        return None
