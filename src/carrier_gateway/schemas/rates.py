"""Shipping-rate callback request/response schemas."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _PassThroughModel(BaseModel):
    """Platform payloads carry many fields we forward untouched."""

    model_config = ConfigDict(extra="allow", frozen=True)


class RateDestination(_PassThroughModel):
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class RateOrigin(_PassThroughModel):
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None


class RateItem(_PassThroughModel):
    properties: Any = None


class RateRequest(_PassThroughModel):
    destination: RateDestination
    origin: RateOrigin = Field(default_factory=RateOrigin)
    currency: Optional[str] = None
    items: List[RateItem] = Field(default_factory=list)


class RateCallback(_PassThroughModel):
    """Body the storefront posts to the carrier-service callback URL."""

    rate: RateRequest


class QuotedRate(_PassThroughModel):
    """One carrier rate, price in minor currency units."""

    total_price: int
    service_name: Optional[str] = None


class RateResponse(BaseModel):
    rates: List[QuotedRate] = Field(default_factory=list)


class PriceCheckRequest(_PassThroughModel):
    """Manual price check composed by an operator."""

    items: List[dict[str, Any]] = Field(default_factory=list)
    recipient: dict[str, Any] = Field(default_factory=dict)
    currency: Optional[str] = None
