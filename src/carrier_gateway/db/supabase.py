"""Supabase connection backing the credential store."""

import logging
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from ..config import settings
from ..errors import mask_secret

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Optional[Client]:
    """Cached client for the credential database.

    Returns ``None`` when ``CGW_SUPABASE_URL`` or ``CGW_SUPABASE_KEY`` is unset.
    Creating the client opens no connection; network errors surface on the
    first query.
    """
    url, key = settings.supabase_url, settings.supabase_key
    if not url or not key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.error("Failed to create Supabase client for %s (key %s): %s", url, mask_secret(key), exc)
        return None
    logger.info("Using Supabase credential store at %s (table %s)", url, settings.credentials_table)
    return client
