"""Order translation and reference ids."""

from .reference import derive_reference_id, generate_reference_id
from .translator import (
    extract_shop_identifier,
    is_carrier_order,
    translate_manual_order,
    translate_order_webhook,
)

__all__ = [
    "generate_reference_id",
    "derive_reference_id",
    "extract_shop_identifier",
    "is_carrier_order",
    "translate_order_webhook",
    "translate_manual_order",
]
