"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings
from ...errors import CredentialStoreError

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/carrier", status_code=status.HTTP_200_OK)
def health_carrier() -> dict:
    """Check that the configured carrier base URL answers."""
    from ...services.carrier.client import check_health

    return {"service": "carrier", "base_url": settings.carrier_base_url, "healthy": check_health()}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check the credential database connection."""
    from ...db.supabase import get_supabase_client
    from ...persistence.credentials import SupabaseCredentialStore

    client = get_supabase_client()
    if not client:
        return {
            "configured": False,
            "message": "Supabase not configured. Set CGW_SUPABASE_URL and CGW_SUPABASE_KEY environment variables.",
        }

    try:
        shops = SupabaseCredentialStore(client).count()
    except CredentialStoreError as exc:
        return {
            "configured": True,
            "connected": False,
            "error": exc.message,
            "message": f"Database connection error: {exc.message}",
        }
    return {
        "configured": True,
        "connected": True,
        "shops_configured": shops,
        "message": f"Database connected. {shops} shop(s) have carrier credentials.",
    }
