"""HTTP client for the carrier plugin API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ...config import settings
from ...errors import CarrierProtocolError, CarrierUnavailable, mask_secret

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-KEY"

# Raw bodies attached to errors are truncated to keep log lines bounded.
_MAX_RAW_BODY = 2000


def _raw(response: httpx.Response) -> str:
    return response.text[:_MAX_RAW_BODY]


class CarrierClient:
    """Single HTTP boundary to the carrier.

    Every call sends the API key both as the ``X-API-KEY`` query parameter and
    as a header. The client never retries; retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Carrier base URL is not configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.carrier_timeout_seconds
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    def send(
        self,
        method: str,
        path: str,
        api_key: str,
        body: Any | None = None,
        params: dict[str, Any] | None = None,
        expect_json: bool = True,
    ) -> Any:
        """Call the carrier and return the decoded JSON body.

        Raises ``CarrierUnavailable`` on network errors, timeouts, 429 and 5xx;
        ``CarrierProtocolError`` on any other non-2xx status or an undecodable
        body. With ``expect_json=False`` an empty or non-JSON success body is
        returned as ``{}`` or ``{"raw": <text>}``.
        """
        query = {**(params or {}), API_KEY_HEADER: api_key}
        headers = {
            "accept": "application/json",
            "Content-Type": "application/json",
            API_KEY_HEADER: api_key,
        }
        client = self._get_client()
        try:
            try:
                response = client.request(method, path, params=query, headers=headers, json=body)
            except httpx.TimeoutException as exc:
                logger.warning("Carrier %s %s timed out after %.1fs", method, path, self.timeout)
                raise CarrierUnavailable(f"Carrier request timed out after {self.timeout}s") from exc
            except httpx.HTTPError as exc:
                logger.warning("Carrier %s %s failed: %s", method, path, exc)
                raise CarrierUnavailable(f"Failed to reach carrier at {self.base_url}: {exc}") from exc
        finally:
            client.close()

        status = response.status_code
        if status == 429 or status >= 500:
            raise CarrierUnavailable(
                f"Carrier returned HTTP {status} for {method} {path}", raw_body=_raw(response), status_code=status
            )
        if not response.is_success:
            raise CarrierProtocolError(
                f"Carrier returned HTTP {status} for {method} {path}", raw_body=_raw(response), status_code=status
            )

        if not response.content:
            if expect_json:
                raise CarrierProtocolError(f"Carrier returned an empty body for {method} {path}", status_code=status)
            return {}
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            if not expect_json:
                return {"raw": _raw(response)}
            raise CarrierProtocolError(
                f"Carrier returned malformed JSON for {method} {path}", raw_body=_raw(response), status_code=status
            ) from exc

    def check_price(self, api_key: str, body: dict[str, Any]) -> Any:
        return self.send("POST", "/plugin/orders/check-price", api_key, body=body)

    def check_platform_rates(self, api_key: str, body: dict[str, Any]) -> Any:
        # Rate callbacks use the storefront-specific price check, answered with {"rates": [...]}.
        return self.send("POST", "/plugin/shopify/orders/check-price", api_key, body=body)

    def create_order(self, api_key: str, order: dict[str, Any]) -> Any:
        # Success has no response contract beyond the 2xx status.
        return self.send("POST", "/plugin/orders/create-order", api_key, body=order, expect_json=False)

    def list_orders(self, api_key: str, page: int, size: int) -> Any:
        return self.send("GET", "/plugin/orders", api_key, params={"page": page, "size": size})

    def get_wallet(self, api_key: str) -> Any:
        return self.send("GET", "/plugin/wallet", api_key)

    def get_info(self, api_key: str) -> Any:
        return self.send("GET", "/plugin/info", api_key)

    def connect_store(self, api_key: str, shop: str) -> Any:
        return self.send("POST", "/plugin/shopify", api_key, body={"apiKey": api_key, "store": shop})

    def push_store_data(self, api_key: str, shop: str, store_data: dict[str, Any]) -> Any:
        return self.send(
            "POST",
            "/plugin/shopify/store",
            api_key,
            body={"apiKey": api_key, "store": shop, "storeData": store_data},
        )

    def __repr__(self) -> str:
        return f"CarrierClient(base_url={self.base_url!r}, timeout={self.timeout})"


def check_health(base_url: str | None = None, api_key: str | None = None) -> bool:
    """Check carrier reachability; with an API key, also that the key is accepted."""
    base = base_url or settings.carrier_base_url
    if not base:
        return False
    client = CarrierClient(base, timeout=5.0)
    try:
        if api_key:
            data = client.get_info(api_key)
            return isinstance(data, dict) and data.get("status") == "success"
        response = httpx.get(base, timeout=5.0)
        return response.status_code < 500
    except (CarrierUnavailable, CarrierProtocolError, httpx.HTTPError) as exc:
        logger.info("Carrier health check failed (key %s): %s", mask_secret(api_key), exc)
        return False
