from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from carrier_gateway.api.deps import get_dispatcher
from carrier_gateway.main import create_app
from carrier_gateway.services.credentials import CredentialResolver
from carrier_gateway.services.gateway.dispatcher import GatewayDispatcher

from conftest import CARRIER_NAME, SHOP


@pytest.fixture
def api_client(config, store, carrier) -> TestClient:
    dispatcher = GatewayDispatcher(
        CredentialResolver(store),
        config=config,
        client_factory=carrier.client,
        executor=ThreadPoolExecutor(max_workers=1),
        sleep=lambda seconds: None,
    )
    app = create_app()
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    dispatcher.shutdown()


def _callback(country: str = "IT") -> dict:
    return {
        "rate": {
            "origin": {"country": "BG", "city": "Sofia"},
            "destination": {"country": country, "city": "Milan"},
            "items": [{"name": "Boots", "grams": 900}],
            "currency": "EUR",
        }
    }


def test_health(api_client):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_service(api_client):
    payload = api_client.get("/").json()

    assert payload["status"] == "running"
    assert payload["health"] == "/api/health"


def test_rate_callback_uses_shop_domain_header(api_client, carrier):
    carrier.on("POST", "/plugin/shopify/orders/check-price", json_body={"rates": [{"total_price": "12.5"}]})

    response = api_client.post("/api/carrier/rates", json=_callback(), headers={"X-Shopify-Shop-Domain": SHOP})

    assert response.status_code == 200
    assert response.json() == {"rates": [{"total_price": 1250}]}


def test_rate_callback_falls_back_to_referer(api_client, carrier):
    carrier.on("POST", "/plugin/shopify/orders/check-price", json_body={"rates": []})

    response = api_client.post("/api/carrier/rates", json=_callback(), headers={"Referer": f"https://{SHOP}/cart"})

    assert response.status_code == 200
    assert response.json() == {"rates": []}
    assert len(carrier.requests) == 1


def test_rate_callback_outside_allow_list(api_client, carrier):
    response = api_client.post("/api/carrier/rates", json=_callback("US"), headers={"X-Shopify-Shop-Domain": SHOP})

    assert response.status_code == 200
    assert response.json() == {"rates": []}
    assert carrier.requests == []


def test_rate_callback_for_unconfigured_shop(api_client):
    response = api_client.post(
        "/api/carrier/rates", json=_callback(), headers={"X-Shopify-Shop-Domain": "nobody.myshopify.com"}
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_configured"


def test_order_webhook_round_trip(api_client, carrier):
    carrier.on("POST", "/plugin/orders/create-order", json_body={"status": "success"})
    webhook = {
        "shipping_lines": [{"source": CARRIER_NAME}],
        "order_status_url": f"https://{SHOP}/1/orders/abc",
        "line_items": [{"id": 1, "grams": 500, "price": "3.00", "name": "Socks", "sku": "S"}],
    }

    response = api_client.post("/api/webhooks/orders/create", json=webhook)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "created"
    assert response.headers["X-Reference-Id"] == body["reference_id"]


def test_manual_order_failure_returns_reference_id_header(api_client, carrier):
    carrier.on("POST", "/plugin/orders/create-order", status_code=503, text="down")

    response = api_client.post(
        "/api/orders",
        params={"shop": SHOP},
        json={"items": [{"id": 1, "weight": 1, "price": 2, "name": "Box", "sku": "B"}], "recipient": {}},
    )

    assert response.status_code == 503
    assert response.headers["X-Reference-Id"] == response.json()["reference_id"]


def test_list_orders_validates_paging(api_client, carrier):
    response = api_client.get("/api/orders", params={"shop": SHOP, "size": 0})

    assert response.status_code == 422
    assert carrier.requests == []


def test_wallet_endpoint(api_client, carrier):
    carrier.on("GET", "/plugin/wallet", json_body={"data": {"balance": 5, "currency": "EUR"}})

    response = api_client.get("/api/wallet", params={"shop": SHOP})

    assert response.status_code == 200
    assert response.json() == {"balance": 5.0, "currency": "EUR", "updated_at": None}


def test_key_setup_rejected_key(api_client, carrier):
    carrier.on("GET", "/plugin/info", json_body={"status": "error"})

    response = api_client.post("/api/key", json={"shop": "new.myshopify.com", "api_key": "abcdefghijkl"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_api_key"


def test_database_health_without_supabase(api_client, monkeypatch):
    from carrier_gateway.db import supabase as supabase_module

    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: None)

    payload = api_client.get("/api/health/database").json()

    assert payload["configured"] is False


def test_webhook_redelivery_keeps_reference_id(api_client, carrier):
    carrier.on("POST", "/plugin/orders/create-order", text="")
    webhook = {
        "id": 820982911946154508,
        "shipping_lines": [{"source": CARRIER_NAME}],
        "order_status_url": f"https://{SHOP}/1/orders/abc",
        "line_items": [{"id": 1, "grams": 500, "price": "3.00", "name": "Socks", "sku": "S"}],
    }
    headers = {"X-Shopify-Webhook-Id": "b54557e4-bdd9-4b37-8a5f-bf7d70bcd043"}

    first = api_client.post("/api/webhooks/orders/create", json=webhook, headers=headers)
    second = api_client.post("/api/webhooks/orders/create", json=webhook, headers=headers)

    assert first.headers["X-Reference-Id"] == second.headers["X-Reference-Id"]


def test_rate_callback_with_unparseable_referer(api_client, carrier):
    response = api_client.post("/api/carrier/rates", json=_callback(), headers={"Referer": "https://[bad/cart"})

    assert response.status_code == 400
    assert response.json()["error"] == "unrecognized_shop"
    assert carrier.requests == []
