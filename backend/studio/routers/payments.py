"""Payment routes — checkout creation and the provider webhook."""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from studio.database import get_db
from studio.deps import CurrentUser, get_current_user, get_http_client
from studio.schemas.payment import CreateChargeRequest, CreateChargeResponse, WebhookResponse
from studio.services import payment_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/create-charge", response_model=CreateChargeResponse)
def create_charge(
    payload: CreateChargeRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    http_client: httpx.Client = Depends(get_http_client),
):
    charge = payment_service.create_charge(db, user, payload.package_id, http_client=http_client)
    return CreateChargeResponse(
        checkout_url=charge["checkoutUrl"],
        charge_id=charge["chargeId"],
        order_id=charge["orderId"],
    )


async def raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/webhook", response_model=WebhookResponse)
def webhook(
    body: bytes = Depends(raw_body),
    x_cc_webhook_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """Verify the signature over the raw body, then apply the event."""
    return payment_service.handle_webhook(db, body, x_cc_webhook_signature)
