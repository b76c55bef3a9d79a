"""Storefront webhook receivers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Header, status
from fastapi.responses import JSONResponse

from ...services.gateway.dispatcher import GatewayDispatcher
from ..deps import get_dispatcher, to_response

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/orders/create", status_code=status.HTTP_200_OK)
def order_created(
    payload: dict[str, Any] = Body(...),
    x_shopify_webhook_id: str | None = Header(default=None),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Create the carrier order. Redeliveries of the same order reuse its reference id."""
    return to_response(dispatcher.handle_order_webhook(payload, delivery_id=x_shopify_webhook_id))
