import json
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import httpx
import pytest

from carrier_gateway.config import Settings
from carrier_gateway.models.domain import TenantCredential
from carrier_gateway.persistence.credentials import InMemoryCredentialStore
from carrier_gateway.services.carrier.client import CarrierClient
from carrier_gateway.services.credentials import CredentialResolver
from carrier_gateway.services.gateway.dispatcher import GatewayDispatcher

SHOP = "acme-shop.myshopify.com"
API_KEY = "key-0123456789abcdef"
BASE_URL = "https://carrier.test"
CARRIER_NAME = "Pratka Shipping"


class FakeCarrier:
    """Routes carrier requests to canned responses and records what was sent."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, status_code: int = 200, json_body=None, text: str | None = None) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json_body)

        self.routes[(method, path)] = respond

    def on_call(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "no route"})
        return route(request)

    def client(self, base_url: str = BASE_URL) -> CarrierClient:
        return CarrierClient(base_url, timeout=1.0, transport=httpx.MockTransport(self.handler))

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def config() -> Settings:
    return Settings(
        target_countries=("IT", "BG"),
        carrier_service_name=CARRIER_NAME,
        carrier_base_url=BASE_URL,
        carrier_max_retries=2,
        carrier_backoff_seconds=0.0,
        order_create_retries=0,
        supabase_url=None,
        supabase_key=None,
    )


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore([TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL)])


@pytest.fixture
def carrier() -> FakeCarrier:
    return FakeCarrier()


@pytest.fixture
def dispatcher(config: Settings, store: InMemoryCredentialStore, carrier: FakeCarrier):
    executor = ThreadPoolExecutor(max_workers=1)
    dispatcher = GatewayDispatcher(
        CredentialResolver(store),
        config=config,
        client_factory=carrier.client,
        executor=executor,
        sleep=lambda seconds: None,
    )
    yield dispatcher
    dispatcher.shutdown()
