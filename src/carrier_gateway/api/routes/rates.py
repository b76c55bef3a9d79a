"""Carrier-service rate callback endpoint."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Body, Depends, Header, status
from fastapi.responses import JSONResponse

from ...services.gateway.dispatcher import GatewayDispatcher
from ..deps import get_dispatcher, to_response

router = APIRouter(prefix="/carrier", tags=["rates"])


def _shop_from_headers(shop_domain: str | None, referer: str | None) -> str | None:
    if shop_domain:
        return shop_domain
    if referer:
        try:
            return urlsplit(referer).hostname
        except ValueError:
            return None
    return None


@router.post("/rates", status_code=status.HTTP_200_OK)
def shipping_rates(
    payload: dict[str, Any] = Body(...),
    x_shopify_shop_domain: str | None = Header(default=None),
    referer: str | None = Header(default=None),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Quote shipping for a checkout. Destinations we do not serve get an empty rate list."""
    shop = _shop_from_headers(x_shopify_shop_domain, referer)
    return to_response(dispatcher.handle_rate_request(payload, shop))
