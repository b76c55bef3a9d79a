"""Manual order submission, order listing and price check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from ...services.gateway.dispatcher import GatewayDispatcher
from ..deps import get_dispatcher, to_response

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_200_OK)
def submit_order(
    shop: str = Query(..., description="Shop identifier, e.g. acme-shop.myshopify.com"),
    payload: dict[str, Any] = Body(...),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Create a carrier order from a manually composed form.

    The response always carries the reference id used. To retry a failed
    submission, send it back as ``referenceId`` so the carrier sees the same order.
    """
    return to_response(dispatcher.submit_manual_order(shop, payload))


@router.get("", status_code=status.HTTP_200_OK)
def list_orders(
    shop: str = Query(...),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    return to_response(dispatcher.list_orders(shop, page=page, size=size))


@router.post("/check-price", status_code=status.HTTP_200_OK)
def check_price(
    shop: str = Query(...),
    payload: dict[str, Any] = Body(...),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    return to_response(dispatcher.check_price(shop, payload))
