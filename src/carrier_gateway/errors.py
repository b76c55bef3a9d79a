"""Failure taxonomy shared by translators, the carrier client and the dispatcher.

Translators and the carrier client raise ``GatewayError`` subclasses and never
catch their own failures. The gateway dispatcher is the only place that turns a
``FailureKind`` into an HTTP status code.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    NOT_APPLICABLE = "not_applicable"
    UNRECOGNIZED_SHOP = "unrecognized_shop"
    INVALID_REQUEST = "invalid_request"
    INVALID_API_KEY = "invalid_api_key"
    CARRIER_UNAVAILABLE = "carrier_unavailable"
    CARRIER_PROTOCOL_ERROR = "carrier_protocol_error"
    CREDENTIAL_STORE_ERROR = "credential_store_error"


class GatewayError(Exception):
    """Base class for every failure the gateway knows how to report."""

    kind: FailureKind
    retryable: bool = False

    def __init__(self, message: str, *, raw_body: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw_body = raw_body
        self.status_code = status_code


class NotConfigured(GatewayError):
    """No carrier credential is stored for the shop."""

    kind = FailureKind.NOT_CONFIGURED


class UnrecognizedShop(GatewayError):
    """The shop identifier could not be extracted from the inbound trigger."""

    kind = FailureKind.UNRECOGNIZED_SHOP


class InvalidRequest(GatewayError):
    kind = FailureKind.INVALID_REQUEST


class InvalidApiKey(GatewayError):
    """The carrier rejected an API key during key setup."""

    kind = FailureKind.INVALID_API_KEY


class CarrierUnavailable(GatewayError):
    """Network failure, timeout, or a carrier-side 5xx/429."""

    kind = FailureKind.CARRIER_UNAVAILABLE
    retryable = True


class CarrierProtocolError(GatewayError):
    """The carrier answered, but not with the shape we expect."""

    kind = FailureKind.CARRIER_PROTOCOL_ERROR


class CredentialStoreError(GatewayError):
    kind = FailureKind.CREDENTIAL_STORE_ERROR
    retryable = True


def mask_secret(value: str | None) -> str:
    """Return a log-safe rendition of a secret (first and last four characters)."""
    if not value:
        return "<empty>"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


class Outcome(str, Enum):
    """Non-error results a translator can return instead of a payload."""

    NOT_APPLICABLE = "not_applicable"


NOT_APPLICABLE = Outcome.NOT_APPLICABLE
