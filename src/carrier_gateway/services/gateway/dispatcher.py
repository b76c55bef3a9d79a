"""Gateway dispatcher: one entry point per external trigger.

Each operation resolves the shop's credential, translates the inbound payload,
calls the carrier and maps the answer back. Failures of any kind end up here
and are converted to a status code and error body; nothing below this module
decides HTTP semantics.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar

from pydantic import ValidationError

from ...config import Settings, settings as default_settings
from ...errors import (
    NOT_APPLICABLE,
    CarrierProtocolError,
    CarrierUnavailable,
    FailureKind,
    GatewayError,
    InvalidApiKey,
    InvalidRequest,
    NotConfigured,
    Outcome,
    UnrecognizedShop,
    mask_secret,
)
from ...models.domain import TenantCredential, WalletBalance
from ...schemas.account import ApiKeyRequest, CredentialStatus, OrdersPageModel, WalletModel
from ...schemas.orders import ManualOrderForm, OrderCreatedWebhook, OrderPayload
from ...schemas.rates import PriceCheckRequest, RateCallback
from ..carrier.client import CarrierClient
from ..credentials import CredentialResolver
from ..orders.reference import derive_reference_id, generate_reference_id
from ..orders.translator import (
    extract_shop_identifier,
    is_carrier_order,
    translate_manual_order,
    translate_order_webhook,
)
from ..rates.translator import map_rate_response, normalize_rate_request
from .states import DispatchState, DispatchTrace

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILURE_STATUS_CODES: dict[FailureKind, int] = {
    FailureKind.NOT_CONFIGURED: 404,
    FailureKind.UNRECOGNIZED_SHOP: 400,
    FailureKind.INVALID_REQUEST: 422,
    FailureKind.INVALID_API_KEY: 400,
    FailureKind.CARRIER_UNAVAILABLE: 503,
    FailureKind.CARRIER_PROTOCOL_ERROR: 502,
    FailureKind.CREDENTIAL_STORE_ERROR: 503,
}


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatched trigger, already shaped for the HTTP layer."""

    state: DispatchState
    status_code: int
    body: Any
    history: tuple[DispatchState, ...] = ()
    failure: FailureKind | None = None
    outcome: Outcome | None = None
    shop: str | None = None
    reference_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is DispatchState.DONE


class GatewayDispatcher:
    """Stateless across requests; every call builds its own ``DispatchTrace``."""

    def __init__(
        self,
        resolver: CredentialResolver,
        *,
        config: Settings | None = None,
        client_factory: Callable[[str], CarrierClient] | None = None,
        executor: ThreadPoolExecutor | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.resolver = resolver
        self.config = config or default_settings
        self.client_factory = client_factory or (
            lambda base_url: CarrierClient(base_url, timeout=self.config.carrier_timeout_seconds)
        )
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.config.registration_workers,
            thread_name_prefix="carrier-registration",
        )
        self._sleep = sleep

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    # -- shared steps ---------------------------------------------------------

    def _resolve(self, trace: DispatchTrace, shop: str | None) -> TenantCredential:
        if not shop:
            raise UnrecognizedShop("Request does not identify a shop")
        trace.shop = shop.strip().lower()
        credential = self.resolver.resolve(trace.shop)
        if credential is None:
            raise NotConfigured(
                f"Shop {trace.shop} has no carrier API key. "
                f"Configure one with POST {self.config.api_prefix}/key before retrying."
            )
        trace.advance(DispatchState.CREDENTIAL_RESOLVED)
        return credential

    def _call(self, trace: DispatchTrace, operation: Callable[[], T], retries: int) -> T:
        """Run a carrier call, retrying ``CarrierUnavailable`` with exponential backoff."""
        attempt = 0
        while True:
            try:
                result = operation()
                break
            except CarrierUnavailable as exc:
                attempt += 1
                if attempt > retries:
                    raise
                wait_time = self.config.carrier_backoff_seconds * (2 ** (attempt - 1))
                logger.info(
                    "%s for %s (ref %s): carrier unavailable, retrying in %.1fs (attempt %d/%d): %s",
                    trace.operation, trace.shop, trace.reference_id, wait_time, attempt, retries, exc,
                )
                self._sleep(wait_time)
        trace.advance(DispatchState.CARRIER_CALLED)
        return result

    def _done(self, trace: DispatchTrace, body: Any, status_code: int = 200) -> DispatchResult:
        trace.advance(DispatchState.DONE)
        return self._result(trace, status_code, body)

    def _not_applicable(self, trace: DispatchTrace, body: Any) -> DispatchResult:
        trace.finish_early()
        return self._result(trace, 200, body, outcome=NOT_APPLICABLE)

    def _failed(self, trace: DispatchTrace, exc: GatewayError) -> DispatchResult:
        trace.fail(exc.kind)
        log = logger.error if exc.kind in (FailureKind.CARRIER_PROTOCOL_ERROR, FailureKind.CREDENTIAL_STORE_ERROR) else logger.warning
        log(
            "%s failed for shop=%s ref=%s kind=%s: %s%s",
            trace.operation,
            trace.shop,
            trace.reference_id,
            exc.kind.value,
            exc.message,
            f" | carrier body: {exc.raw_body}" if exc.raw_body else "",
        )
        body: dict[str, Any] = {"error": exc.kind.value, "detail": exc.message}
        if trace.reference_id:
            body["reference_id"] = trace.reference_id
        if exc.kind is FailureKind.NOT_CONFIGURED:
            body["setup"] = f"{self.config.api_prefix}/key"
        return self._result(trace, FAILURE_STATUS_CODES[exc.kind], body)

    def _result(self, trace: DispatchTrace, status_code: int, body: Any, outcome: Outcome | None = None) -> DispatchResult:
        return DispatchResult(
            state=trace.state,
            status_code=status_code,
            body=body,
            history=tuple(trace.history),
            failure=trace.failure,
            outcome=outcome,
            shop=trace.shop,
            reference_id=trace.reference_id,
        )

    @staticmethod
    def _validate(model: type[T], payload: Any) -> T:
        try:
            return model.model_validate(payload)  # type: ignore[attr-defined]
        except ValidationError as exc:
            raise InvalidRequest(f"Invalid {model.__name__}: {exc.error_count()} validation error(s): {exc.errors()[0]['msg']}") from exc

    # -- storefront triggers --------------------------------------------------

    def handle_rate_request(self, payload: Any, shop: str | None) -> DispatchResult:
        """Shipping-rate callback: quote the carrier and return storefront rates."""
        trace = DispatchTrace("rate_request", shop)
        try:
            callback = self._validate(RateCallback, payload)
            # Unserved destinations get no rate before any credential lookup.
            normalized = normalize_rate_request(
                callback.rate,
                self.config.target_countries,
                settlement_currency=self.config.settlement_currency,
            )
            if normalized is NOT_APPLICABLE:
                return self._not_applicable(trace, {"rates": []})
            credential = self._resolve(trace, shop)
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            body = {"data": {"rate": normalized.model_dump(mode="json")}}
            raw = self._call(
                trace,
                lambda: client.check_platform_rates(credential.api_key, body),
                self.config.carrier_max_retries,
            )

            mapped = map_rate_response(raw)
            trace.advance(DispatchState.RESPONSE_MAPPED)
            return self._done(trace, mapped.model_dump(mode="json", exclude_unset=True))
        except GatewayError as exc:
            return self._failed(trace, exc)

    def handle_order_webhook(
        self, payload: Any, reference_id: str | None = None, delivery_id: str | None = None
    ) -> DispatchResult:
        """``orders/create`` webhook: create the carrier order for our shipments only.

        The reference id is derived from the shop and order id (or, failing
        that, the delivery id) so a redelivered webhook reaches the carrier
        with the same reference id.
        """
        trace = DispatchTrace("order_webhook")
        try:
            order = self._validate(OrderCreatedWebhook, payload)
            if not is_carrier_order(order, self.config.carrier_service_name):
                logger.info("Order webhook not shipped with %r; ignoring", self.config.carrier_service_name)
                return self._not_applicable(trace, {"status": "ignored"})

            shop = extract_shop_identifier(order.order_status_url, self.config.platform_domain)
            credential = self._resolve(trace, shop)

            trace.reference_id = reference_id or _webhook_reference_id(credential.shop_url, order, delivery_id)
            translated = translate_order_webhook(
                order,
                self.config.carrier_service_name,
                trace.reference_id,
                payment_type=self.config.default_payment_type,
                default_country_code=self.config.default_country_code,
                default_country=self.config.default_country,
            )
            if translated is NOT_APPLICABLE:
                return self._not_applicable(trace, {"status": "ignored"})
            trace.advance(DispatchState.TRANSLATED)
            return self._create_order(trace, credential, translated)
        except GatewayError as exc:
            return self._failed(trace, exc)

    def submit_manual_order(self, shop: str | None, payload: Any) -> DispatchResult:
        """Operator-composed order. A retry must pass back the reference id of the failed attempt."""
        trace = DispatchTrace("manual_order", shop)
        try:
            form = self._validate(ManualOrderForm, payload)
            trace.reference_id = form.reference_id or generate_reference_id()
            credential = self._resolve(trace, shop)

            translated = translate_manual_order(
                form, trace.reference_id, payment_type=self.config.default_payment_type
            )
            trace.advance(DispatchState.TRANSLATED)
            return self._create_order(trace, credential, translated)
        except GatewayError as exc:
            return self._failed(trace, exc)

    def _create_order(self, trace: DispatchTrace, credential: TenantCredential, order: OrderPayload) -> DispatchResult:
        client = self.client_factory(credential.base_url)
        wire = order.to_wire()
        # Same payload on every attempt, so retries carry the same reference id.
        raw = self._call(
            trace,
            lambda: client.create_order(credential.api_key, wire),
            self.config.order_create_retries,
        )
        trace.advance(DispatchState.RESPONSE_MAPPED)
        logger.info("Created carrier order ref=%s for %s", trace.reference_id, trace.shop)
        return self._done(
            trace,
            {"status": "created", "reference_id": trace.reference_id, "carrier_response": raw},
        )

    # -- operator tools -------------------------------------------------------

    def check_price(self, shop: str | None, payload: Any) -> DispatchResult:
        trace = DispatchTrace("check_price", shop)
        try:
            request = self._validate(PriceCheckRequest, payload)
            credential = self._resolve(trace, shop)

            body = request.model_dump(mode="json")
            body["currency"] = self.config.settlement_currency
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            raw = self._call(trace, lambda: client.check_price(credential.api_key, body), self.config.carrier_max_retries)
            mapped = map_rate_response(raw)
            trace.advance(DispatchState.RESPONSE_MAPPED)
            return self._done(trace, mapped.model_dump(mode="json", exclude_unset=True))
        except GatewayError as exc:
            return self._failed(trace, exc)

    def list_orders(self, shop: str | None, page: int = 0, size: int = 10) -> DispatchResult:
        trace = DispatchTrace("list_orders", shop)
        try:
            if page < 0 or size < 1:
                raise InvalidRequest("page must be >= 0 and size >= 1")
            credential = self._resolve(trace, shop)
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            raw = self._call(trace, lambda: client.list_orders(credential.api_key, page, size), self.config.carrier_max_retries)
            if not isinstance(raw, Mapping) or raw.get("data") is None:
                raise CarrierProtocolError("Carrier order listing has no 'data'")
            trace.advance(DispatchState.RESPONSE_MAPPED)
            page_body = OrdersPageModel(data=raw["data"], page=page, size=size)
            return self._done(trace, page_body.model_dump(mode="json"))
        except GatewayError as exc:
            return self._failed(trace, exc)

    def get_wallet(self, shop: str | None) -> DispatchResult:
        trace = DispatchTrace("wallet", shop)
        try:
            credential = self._resolve(trace, shop)
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            raw = self._call(trace, lambda: client.get_wallet(credential.api_key), self.config.carrier_max_retries)
            wallet = parse_wallet(raw)
            trace.advance(DispatchState.RESPONSE_MAPPED)
            body = WalletModel(balance=wallet.balance, currency=wallet.currency, updated_at=wallet.updated_at)
            return self._done(trace, body.model_dump(mode="json"))
        except GatewayError as exc:
            return self._failed(trace, exc)

    def credential_status(self, shop: str | None) -> DispatchResult:
        """Report whether the shop is configured and whether the carrier still accepts its key."""
        trace = DispatchTrace("credential_status", shop)
        try:
            credential = self._resolve(trace, shop)
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            raw = self._call(trace, lambda: client.get_info(credential.api_key), self.config.carrier_max_retries)
            valid, message = interpret_key_validation(raw)
            trace.advance(DispatchState.RESPONSE_MAPPED)
            status = CredentialStatus(
                shop=credential.shop_url,
                configured=True,
                base_url=credential.base_url,
                masked_key=mask_secret(credential.api_key),
                valid=valid,
                message=message,
            )
            return self._done(trace, status.model_dump(mode="json"))
        except GatewayError as exc:
            return self._failed(trace, exc)

    def configure_api_key(self, payload: Any) -> DispatchResult:
        """Validate and store a shop's API key, then register the store in the background."""
        trace = DispatchTrace("configure_api_key")
        try:
            request = self._validate(ApiKeyRequest, payload)
            trace.shop = request.shop.strip().lower()
            credential = TenantCredential(
                shop_url=trace.shop,
                api_key=request.api_key.strip(),
                base_url=(request.base_url or self.config.carrier_base_url).rstrip("/"),
            )
            trace.advance(DispatchState.CREDENTIAL_RESOLVED)
            trace.advance(DispatchState.TRANSLATED)

            client = self.client_factory(credential.base_url)
            raw = self._call(trace, lambda: client.get_info(credential.api_key), self.config.carrier_max_retries)
            valid, message = interpret_key_validation(raw)
            if not valid:
                raise InvalidApiKey(f"Carrier rejected the API key {mask_secret(credential.api_key)}")
            trace.advance(DispatchState.RESPONSE_MAPPED)

            self.resolver.save(credential)
            self.dispatch_registration(credential, request.store_data)
            return self._done(
                trace,
                {
                    "status": "saved",
                    "shop": credential.shop_url,
                    "masked_key": mask_secret(credential.api_key),
                    "message": message,
                    "registration": "dispatched",
                },
            )
        except GatewayError as exc:
            return self._failed(trace, exc)

    # -- background registration ----------------------------------------------

    def dispatch_registration(self, credential: TenantCredential, store_data: dict[str, Any]) -> Future:
        """Run the connect + store-data handshake without blocking the caller.

        The outcome is only logged; it never changes the primary response.
        """
        future = self.executor.submit(self.register_store, credential, store_data)
        future.add_done_callback(lambda done: _log_registration(credential.shop_url, done))
        return future

    def register_store(self, credential: TenantCredential, store_data: dict[str, Any]) -> dict[str, Any]:
        client = self.client_factory(credential.base_url)
        connected = client.connect_store(credential.api_key, credential.shop_url)
        if not _is_success(connected):
            raise CarrierProtocolError(f"Carrier refused to connect the key: {_message(connected)}")
        stored = client.push_store_data(credential.api_key, credential.shop_url, store_data)
        if not _is_success(stored):
            raise CarrierProtocolError(f"Carrier refused the store data: {_message(stored)}")
        return stored


def _is_success(payload: Any) -> bool:
    return isinstance(payload, Mapping) and payload.get("status") == "success"


def _message(payload: Any) -> str:
    if isinstance(payload, Mapping):
        return str(payload.get("message") or payload.get("status") or "no message")
    return repr(payload)


def _log_registration(shop: str, future: Future) -> None:
    exc = future.exception()
    if exc is None:
        logger.info("Store registration with carrier completed for %s", shop)
    elif isinstance(exc, GatewayError):
        logger.error("Store registration failed for %s (%s): %s", shop, exc.kind.value, exc.message)
    else:
        logger.error("Store registration failed for %s", shop, exc_info=exc)


def interpret_key_validation(payload: Any) -> tuple[bool, str]:
    """``/plugin/info`` accepts a key with ``status == "success"`` and a non-empty message."""
    if not isinstance(payload, Mapping):
        raise CarrierProtocolError("Carrier key validation response is not an object")
    message = payload.get("message")
    valid = payload.get("status") == "success" and bool(message)
    return valid, str(message) if message else "Invalid API Key"


def parse_wallet(payload: Any) -> WalletBalance:
    """Parse ``{"data": {"balance", "currency"}, "date": <epoch seconds>}``."""
    if not isinstance(payload, Mapping) or not isinstance(payload.get("data"), Mapping):
        raise CarrierProtocolError("Carrier wallet response has no 'data' object")
    data = payload["data"]
    try:
        balance = float(data["balance"])
        currency = str(data["currency"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CarrierProtocolError(f"Carrier wallet data is incomplete: {exc}") from exc

    updated_at = None
    date = payload.get("date")
    if date is not None:
        try:
            updated_at = datetime.fromtimestamp(float(date), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise CarrierProtocolError(f"Carrier wallet date is not an epoch timestamp: {date!r}") from exc
    return WalletBalance(balance=balance, currency=currency, updated_at=updated_at, raw=dict(payload))


def _webhook_reference_id(shop: str, order: OrderCreatedWebhook, delivery_id: str | None) -> str:
    if order.id is not None and str(order.id).strip():
        return derive_reference_id(f"{shop}:order:{order.id}")
    if delivery_id and delivery_id.strip():
        return derive_reference_id(f"{shop}:delivery:{delivery_id.strip()}")
    logger.warning("Order webhook for %s has no order id or delivery id; reference id is random", shop)
    return generate_reference_id()
