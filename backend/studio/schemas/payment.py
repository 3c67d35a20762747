"""Pydantic schemas for payments."""
from typing import Optional

from studio.schemas.common import CamelModel


class CreateChargeRequest(CamelModel):
    package_id: str = ""


class CreateChargeResponse(CamelModel):
    success: bool = True
    checkout_url: Optional[str] = None
    charge_id: Optional[str] = None
    order_id: str


class WebhookResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
