"""Rate quote translation."""

from .translator import is_destination_allowed, map_rate_response, normalize_rate_request, to_minor_units

__all__ = [
    "normalize_rate_request",
    "map_rate_response",
    "is_destination_allowed",
    "to_minor_units",
]
