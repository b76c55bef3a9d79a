"""Order webhook, manual submission and carrier order-creation schemas."""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CarrierModel(BaseModel):
    """Carrier payloads are camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class OrderItem(_CarrierModel):
    id: Union[int, str, None] = None
    weight: float = Field(..., ge=0, description="Weight in kilograms.")
    name: str
    sku: str
    price: float = Field(..., ge=0)
    description: str
    length: float = Field(0, ge=0)
    width: float = Field(0, ge=0)
    height: float = Field(0, ge=0)


class Recipient(_CarrierModel):
    name: str
    phone: str
    email: str
    company: str
    company_vat: str
    country_code: str
    country: str
    state: str
    city: str
    zip: str
    address: str
    address_number: str
    building_number: str
    entrance_number: str
    floor_number: str
    apartment_number: str
    delivery_note: str


class OrderPayload(_CarrierModel):
    """Body of ``POST /plugin/orders/create-order``."""

    items: List[OrderItem]
    recipient: Recipient
    reference_id: str = Field(..., min_length=1)
    payment_type: int = Field(1, ge=0)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ManualOrderForm(BaseModel):
    """Order composed by hand; numeric fields may arrive as strings from the form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    items: List[dict[str, Any]] = Field(default_factory=list)
    recipient: dict[str, Any] = Field(default_factory=dict)
    reference_id: Optional[str] = Field(
        default=None,
        description="Reuse the reference id of a failed attempt to avoid duplicate carrier orders.",
    )
    payment_type: Any = None


class ShippingLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    source: Optional[str] = None
    title: Optional[str] = None
    code: Optional[str] = None


class WebhookLineItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str, None] = None
    grams: Any = None
    name: Optional[str] = None
    sku: Optional[str] = None
    price: Any = None
    title: Optional[str] = None


class WebhookAddress(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    country_code: Optional[str] = None
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None


class OrderCreatedWebhook(BaseModel):
    """Subset of the storefront ``orders/create`` webhook body we consume."""

    model_config = ConfigDict(extra="allow")

    id: Union[int, str, None] = None
    shipping_lines: List[ShippingLine] = Field(default_factory=list)
    order_status_url: Optional[str] = None
    line_items: List[WebhookLineItem] = Field(default_factory=list)
    billing_address: Optional[WebhookAddress] = None
    email: Optional[str] = None
