"""Schemas for key setup, credential status, wallet and order listing."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ApiKeyRequest(BaseModel):
    shop: str = Field(..., min_length=1, description="Shop identifier, e.g. acme-shop.myshopify.com")
    api_key: str = Field(..., min_length=1)
    base_url: Optional[str] = Field(default=None, description="Override of the configured carrier base URL.")
    store_data: dict[str, Any] = Field(
        default_factory=dict,
        description="Store metadata pushed to the carrier during registration.",
    )


class CredentialStatus(BaseModel):
    shop: str
    configured: bool
    base_url: Optional[str] = None
    masked_key: Optional[str] = None
    valid: Optional[bool] = None
    message: Optional[str] = None


class WalletModel(BaseModel):
    balance: float
    currency: str
    updated_at: Optional[datetime] = None


class OrdersPageModel(BaseModel):
    data: Any
    page: int
    size: int
