"""API key setup, credential status and wallet endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from ...services.gateway.dispatcher import GatewayDispatcher
from ..deps import get_dispatcher, to_response

router = APIRouter(tags=["account"])


@router.get("/key", status_code=status.HTTP_200_OK)
def credential_status(
    shop: str = Query(...),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Whether the shop has a key and whether the carrier still accepts it. The key itself is masked."""
    return to_response(dispatcher.credential_status(shop))


@router.post("/key", status_code=status.HTTP_200_OK)
def configure_key(
    payload: dict[str, Any] = Body(...),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    return to_response(dispatcher.configure_api_key(payload))


@router.get("/wallet", status_code=status.HTTP_200_OK)
def wallet(
    shop: str = Query(...),
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    return to_response(dispatcher.get_wallet(shop))
