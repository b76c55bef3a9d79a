"""Translation between storefront rate callbacks and carrier price checks."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Literal, Mapping

from pydantic import ValidationError

from ...errors import NOT_APPLICABLE, CarrierProtocolError, Outcome
from ...schemas.rates import QuotedRate, RateRequest, RateResponse

logger = logging.getLogger(__name__)

_MINOR_UNITS = Decimal(100)


def _quoted_rate(**fields: Any) -> QuotedRate:
    try:
        return QuotedRate(**fields)
    except ValidationError as exc:
        raise CarrierProtocolError(f"Carrier rate entry has an unexpected shape: {exc.errors()[0]['msg']}") from exc


def is_destination_allowed(country: str | None, allowed_countries: Iterable[str]) -> bool:
    if not country:
        return False
    allowed = {code.strip().lower() for code in allowed_countries if code and code.strip()}
    return country.strip().lower() in allowed


def normalize_rate_request(
    rate: RateRequest,
    allowed_countries: Iterable[str],
    settlement_currency: str = "EUR",
) -> RateRequest | Literal[Outcome.NOT_APPLICABLE]:
    """Apply carrier defaults to a rate request.

    Returns ``NOT_APPLICABLE`` when the destination country is outside the
    allow-list; the caller then offers no rate and makes no carrier call.
    Every rule is idempotent and the input is never mutated.
    """
    if not is_destination_allowed(rate.destination.country, allowed_countries):
        logger.info("Destination country %r not served; no rate offered", rate.destination.country)
        return NOT_APPLICABLE

    destination_update: dict[str, Any] = {}
    if not rate.destination.province and rate.destination.city:
        destination_update["province"] = rate.destination.city
    if not rate.destination.latitude:
        destination_update["latitude"] = 0
    if not rate.destination.longitude:
        destination_update["longitude"] = 0

    origin_update: dict[str, Any] = {}
    if not rate.origin.province and rate.origin.city:
        origin_update["province"] = rate.origin.city

    items = []
    for index, item in enumerate(rate.items):
        if isinstance(item.properties, list):
            items.append(item)
        else:
            logger.debug("Item %d has no properties list; using an empty one", index)
            items.append(item.model_copy(update={"properties": []}))

    update: dict[str, Any] = {
        "destination": rate.destination.model_copy(update=destination_update),
        "origin": rate.origin.model_copy(update=origin_update),
        "items": items,
    }
    if rate.currency != settlement_currency:
        update["currency"] = settlement_currency
    return rate.model_copy(update=update)


def to_minor_units(price: Any) -> int:
    """Scale a decimal carrier price to minor units: ``"12.5"`` becomes ``1250``."""
    if price is None or isinstance(price, bool):
        raise CarrierProtocolError(f"Carrier rate has no usable price: {price!r}")
    try:
        amount = Decimal(str(price).strip())
    except InvalidOperation as exc:
        raise CarrierProtocolError(f"Carrier rate price is not numeric: {price!r}") from exc
    if not amount.is_finite():
        raise CarrierProtocolError(f"Carrier rate price is not finite: {price!r}")
    return int((amount * _MINOR_UNITS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _map_rates_shape(rates: list[Any]) -> list[QuotedRate]:
    quoted = []
    for entry in rates:
        if not isinstance(entry, Mapping):
            raise CarrierProtocolError(f"Carrier rate entry is not an object: {entry!r}")
        if "total_price" not in entry:
            raise CarrierProtocolError("Carrier rate entry is missing total_price")
        quoted.append(_quoted_rate(**{**entry, "total_price": to_minor_units(entry["total_price"])}))
    return quoted


def _map_items_shape(items: list[Any]) -> list[QuotedRate]:
    quoted = []
    for entry in items:
        if not isinstance(entry, Mapping):
            raise CarrierProtocolError(f"Carrier price item is not an object: {entry!r}")
        if "price" not in entry:
            raise CarrierProtocolError("Carrier price item is missing price")
        service_type = entry.get("service_type")
        quoted.append(
            _quoted_rate(
                service_name=None if service_type is None else str(service_type),
                service_code=service_type,
                total_price=to_minor_units(entry["price"]),
                weight=entry.get("weight"),
            )
        )
    return quoted


def map_rate_response(payload: Any) -> RateResponse:
    """Map a carrier price-check response to storefront rates.

    Accepts ``{"rates": [{"total_price": ...}]}`` and
    ``{"data": {"items": [{"price": ..., "service_type": ...}]}}``. A single bad
    price fails the whole mapping.
    """
    if not isinstance(payload, Mapping):
        raise CarrierProtocolError(f"Carrier price response is not an object: {type(payload).__name__}")

    rates = payload.get("rates")
    if isinstance(rates, list):
        return RateResponse(rates=_map_rates_shape(rates))

    data = payload.get("data")
    if isinstance(data, Mapping) and isinstance(data.get("items"), list):
        return RateResponse(rates=_map_items_shape(data["items"]))

    raise CarrierProtocolError("Carrier price response has neither 'rates' nor 'data.items'")
