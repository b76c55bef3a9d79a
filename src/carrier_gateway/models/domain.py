"""Domain models for tenant credentials and carrier wallet balances."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class TenantCredential:
    """Carrier credentials configured for one shop."""

    shop_url: str
    api_key: str = field(repr=False)
    base_url: str


@dataclass(frozen=True, slots=True)
class WalletBalance:
    """Carrier wallet balance as reported by ``/plugin/wallet``."""

    balance: float
    currency: str
    updated_at: Optional[datetime]
    raw: dict[str, Any] = field(default_factory=dict, repr=False)
