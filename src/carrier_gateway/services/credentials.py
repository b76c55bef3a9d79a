"""Per-shop carrier credential resolution."""

from __future__ import annotations

import logging

from ..errors import mask_secret
from ..models.domain import TenantCredential
from ..persistence.credentials import CredentialStore

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Maps a shop identifier to its carrier API key and base URL.

    A plain lookup: no retry, no caching. Store failures propagate as
    ``CredentialStoreError``; an absent record is reported as ``None``.
    """

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    def resolve(self, shop_url: str) -> TenantCredential | None:
        shop_url = shop_url.strip().lower()
        if not shop_url:
            return None
        credential = self.store.get(shop_url)
        if credential is None:
            logger.info("No carrier credential configured for %s", shop_url)
            return None
        logger.debug("Resolved credential for %s (key %s)", shop_url, mask_secret(credential.api_key))
        return credential

    def save(self, credential: TenantCredential) -> None:
        self.store.upsert(credential)
