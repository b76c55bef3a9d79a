"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from functools import lru_cache

from fastapi.responses import JSONResponse

from ..persistence.credentials import build_credential_store
from ..services.credentials import CredentialResolver
from ..services.gateway.dispatcher import DispatchResult, GatewayDispatcher


@lru_cache()
def get_dispatcher() -> GatewayDispatcher:
    """Process-wide dispatcher with the credential resolver injected.

    Tests replace it through ``app.dependency_overrides[get_dispatcher]``.
    """
    return GatewayDispatcher(CredentialResolver(build_credential_store()))


def to_response(result: DispatchResult) -> JSONResponse:
    headers = {"X-Reference-Id": result.reference_id} if result.reference_id else None
    return JSONResponse(status_code=result.status_code, content=result.body, headers=headers)
