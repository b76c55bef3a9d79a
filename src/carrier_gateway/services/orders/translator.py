"""Translation of storefront orders and manual forms into carrier orders."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Literal, Mapping

from pydantic import ValidationError

from ...errors import NOT_APPLICABLE, InvalidRequest, Outcome, UnrecognizedShop
from ...schemas.orders import (
    ManualOrderForm,
    OrderCreatedWebhook,
    OrderItem,
    OrderPayload,
    Recipient,
    WebhookAddress,
    WebhookLineItem,
)

logger = logging.getLogger(__name__)

_SUBDOMAIN_PATTERN = r"[a-zA-Z0-9-]+"

# Recipient fields that hold address details the storefront does not provide.
_ADDRESS_DETAIL_FIELDS = (
    "address_number",
    "building_number",
    "entrance_number",
    "floor_number",
    "apartment_number",
    "delivery_note",
)


def extract_shop_identifier(order_status_url: str | None, platform_domain: str = "myshopify.com") -> str:
    """Return ``acme-shop.myshopify.com`` for ``https://acme-shop.myshopify.com/...``."""
    if not order_status_url:
        raise UnrecognizedShop("Order has no order_status_url to identify the shop")
    pattern = rf"^https://({_SUBDOMAIN_PATTERN}\.{re.escape(platform_domain)})(?:[/:?#]|$)"
    match = re.match(pattern, order_status_url.strip(), flags=re.IGNORECASE)
    if not match:
        raise UnrecognizedShop(f"Cannot extract a shop from order_status_url {order_status_url[:200]!r}")
    return match.group(1).lower()


def is_carrier_order(order: OrderCreatedWebhook, carrier_service_name: str) -> bool:
    """True when the order's first shipping line was quoted by our carrier service."""
    if not order.shipping_lines:
        return False
    return order.shipping_lines[0].source == carrier_service_name


def _parse_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(parsed) or parsed < 0:
        return default
    return parsed


def _parse_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return parsed if parsed >= 0 else default


def _item_id(value: Any) -> int | str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return str(value)


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _webhook_item(item: WebhookLineItem) -> OrderItem:
    grams = _parse_float(item.grams)
    return OrderItem(
        id=item.id,
        weight=grams / 1000 if grams else 1.0,
        name=_text(item.name, "Unknown Item"),
        sku=_text(item.sku, "Unknown SKU"),
        price=_parse_float(item.price),
        description=_text(item.title, "No description"),
        length=0,
        width=0,
        height=0,
    )


def _webhook_recipient(
    address: WebhookAddress | None,
    email: str | None,
    default_country_code: str,
    default_country: str,
) -> Recipient:
    address = address or WebhookAddress()
    return Recipient(
        name=_text(address.name, "Unknown Name"),
        phone=_text(address.phone, "Unknown Phone"),
        email=_text(email, "Unknown Email"),
        company=_text(address.company, "Unknown Company"),
        company_vat="Unknown VAT",
        country_code=_text(address.country_code, default_country_code),
        country=_text(address.country, default_country),
        state=_text(address.province, "Unknown State"),
        city=_text(address.city, "Unknown City"),
        zip=_text(address.zip, "00000"),
        address=_text(address.address1, "Unknown Address"),
        **{name: "" for name in _ADDRESS_DETAIL_FIELDS},
    )


def translate_order_webhook(
    order: OrderCreatedWebhook,
    carrier_service_name: str,
    reference_id: str,
    *,
    payment_type: int = 1,
    default_country_code: str = "IT",
    default_country: str = "Italy",
) -> OrderPayload | Literal[Outcome.NOT_APPLICABLE]:
    """Build a carrier order from an ``orders/create`` webhook.

    Orders shipped with another carrier service yield ``NOT_APPLICABLE``.
    ``reference_id`` is generated by the caller once and reused on retries.
    """
    if not is_carrier_order(order, carrier_service_name):
        source = order.shipping_lines[0].source if order.shipping_lines else None
        logger.info("Order shipping source %r is not %r; skipping", source, carrier_service_name)
        return NOT_APPLICABLE

    return OrderPayload(
        items=[_webhook_item(item) for item in order.line_items],
        recipient=_webhook_recipient(order.billing_address, order.email, default_country_code, default_country),
        reference_id=reference_id,
        payment_type=payment_type,
    )


def _manual_item(raw: Mapping[str, Any]) -> OrderItem:
    return OrderItem(
        id=_item_id(raw.get("id", raw.get("itemId"))),
        weight=_parse_float(raw.get("weight")),
        name=_text(raw.get("name"), ""),
        sku=_text(raw.get("sku"), ""),
        price=_parse_float(raw.get("price")),
        description=_text(raw.get("description"), ""),
        length=_parse_float(raw.get("length")),
        width=_parse_float(raw.get("width")),
        height=_parse_float(raw.get("height")),
    )


def _manual_recipient(raw: Mapping[str, Any]) -> Recipient:
    values = {}
    for name, field in Recipient.model_fields.items():
        value = raw.get(field.alias or name, raw.get(name))
        values[name] = _text(value, "")
    return Recipient(**values)


def translate_manual_order(form: ManualOrderForm, reference_id: str, *, payment_type: int = 1) -> OrderPayload:
    """Pass an operator-composed order through with light coercion.

    Non-numeric weights, prices and dimensions become 0; missing recipient
    fields become empty strings.
    """
    if not form.items:
        raise InvalidRequest("A manual order needs at least one item")
    for index, item in enumerate(form.items):
        if not isinstance(item, Mapping):
            raise InvalidRequest(f"Item {index} is not an object")

    try:
        return OrderPayload(
            items=[_manual_item(item) for item in form.items],
            recipient=_manual_recipient(form.recipient),
            reference_id=reference_id,
            payment_type=_parse_int(form.payment_type, payment_type),
        )
    except ValidationError as exc:
        raise InvalidRequest(f"Manual order cannot be sent to the carrier: {exc.errors()[0]['msg']}") from exc
