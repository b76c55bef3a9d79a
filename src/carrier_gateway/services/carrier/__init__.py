"""Carrier API client."""

from .client import API_KEY_HEADER, CarrierClient, check_health

__all__ = ["CarrierClient", "API_KEY_HEADER", "check_health"]
