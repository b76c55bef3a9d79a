"""Credential persistence for per-shop carrier API keys."""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import CredentialStoreError, mask_secret
from ..models.domain import TenantCredential

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get(self, shop_url: str) -> TenantCredential | None:
        ...

    def upsert(self, credential: TenantCredential) -> None:
        ...


def _row_to_credential(row: dict[str, Any]) -> TenantCredential:
    return TenantCredential(
        shop_url=str(row["shop_url"]),
        api_key=str(row["api_key"]),
        base_url=str(row.get("stage_url") or settings.carrier_base_url).rstrip("/"),
    )


class SupabaseCredentialStore:
    """Credentials stored in the ``api_data`` table (``shop_url``, ``api_key``, ``stage_url``)."""

    def __init__(self, client: Any, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.credentials_table

    def get(self, shop_url: str) -> TenantCredential | None:
        try:
            response = (
                self.client.table(self.table)
                .select("shop_url,api_key,stage_url")
                .eq("shop_url", shop_url)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise CredentialStoreError(f"Credential lookup failed for {shop_url}: {exc}") from exc

        rows = response.data or []
        if not rows:
            return None
        try:
            return _row_to_credential(rows[0])
        except (KeyError, TypeError) as exc:
            raise CredentialStoreError(f"Malformed credential row for {shop_url}: {exc}") from exc

    def count(self) -> int:
        """Number of shops with a stored credential."""
        try:
            response = self.client.table(self.table).select("shop_url", count="exact").limit(1).execute()
        except Exception as exc:
            raise CredentialStoreError(f"Credential count failed: {exc}") from exc
        return response.count or 0

    def upsert(self, credential: TenantCredential) -> None:
        record = {
            "shop_url": credential.shop_url,
            "api_key": credential.api_key,
            "stage_url": credential.base_url,
        }
        try:
            self.client.table(self.table).upsert(record, on_conflict="shop_url").execute()
        except Exception as exc:
            raise CredentialStoreError(f"Credential save failed for {credential.shop_url}: {exc}") from exc
        logger.info(
            "Stored carrier credential for %s (key %s)", credential.shop_url, mask_secret(credential.api_key)
        )


class InMemoryCredentialStore:
    """Process-local store used when Supabase is not configured."""

    def __init__(self, credentials: list[TenantCredential] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, TenantCredential] = {c.shop_url: c for c in credentials or []}

    def get(self, shop_url: str) -> TenantCredential | None:
        with self._lock:
            return self._records.get(shop_url)

    def upsert(self, credential: TenantCredential) -> None:
        with self._lock:
            self._records[credential.shop_url] = credential


def build_credential_store() -> CredentialStore:
    """Return the Supabase-backed store, or an in-memory one if Supabase is not configured."""
    client = get_supabase_client()
    if client is None:
        logger.warning("Supabase not configured - carrier credentials are kept in memory only")
        return InMemoryCredentialStore()
    return SupabaseCredentialStore(client)
