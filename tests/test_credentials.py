import pytest

from carrier_gateway.errors import CredentialStoreError
from carrier_gateway.models.domain import TenantCredential
from carrier_gateway.persistence.credentials import InMemoryCredentialStore, SupabaseCredentialStore
from carrier_gateway.services.credentials import CredentialResolver
from carrier_gateway.services.gateway.dispatcher import GatewayDispatcher

from conftest import API_KEY, BASE_URL, SHOP


class _Query:
    """Chainable stand-in for a Supabase table query."""

    def __init__(self, table, rows=None, error=None):
        self.table = table
        self.rows = rows or []
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return record

    def execute(self):
        if self.error:
            raise self.error
        return type("Response", (), {"data": self.rows, "count": len(self.rows)})()


class _Client:
    def __init__(self, query):
        self.query = query

    def table(self, name):
        self.query.calls.append(("table", (name,), {}))
        return self.query


def test_resolver_normalizes_shop_identifier(store):
    resolver = CredentialResolver(store)

    credential = resolver.resolve("  ACME-Shop.myshopify.com ")

    assert credential == TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL)


def test_resolver_reports_missing_shop_as_none(store):
    resolver = CredentialResolver(store)

    assert resolver.resolve("other.myshopify.com") is None
    assert resolver.resolve("   ") is None


def test_resolver_save_overwrites(store):
    resolver = CredentialResolver(store)
    resolver.save(TenantCredential(shop_url=SHOP, api_key="rotated-key-99999999", base_url=BASE_URL))

    assert resolver.resolve(SHOP).api_key == "rotated-key-99999999"


def test_credential_repr_hides_api_key():
    assert API_KEY not in repr(TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL))


def test_supabase_store_reads_api_data_row():
    query = _Query("api_data", rows=[{"shop_url": SHOP, "api_key": API_KEY, "stage_url": BASE_URL + "/"}])
    store = SupabaseCredentialStore(_Client(query), table="api_data")

    credential = store.get(SHOP)

    assert credential == TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL)
    assert ("table", ("api_data",), {}) in query.calls
    assert ("eq", ("shop_url", SHOP), {}) in query.calls


def test_supabase_store_missing_row_is_none():
    store = SupabaseCredentialStore(_Client(_Query("api_data")), table="api_data")

    assert store.get(SHOP) is None


def test_supabase_store_upserts_on_shop_url():
    query = _Query("api_data")
    store = SupabaseCredentialStore(_Client(query), table="api_data")

    store.upsert(TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL))

    name, args, kwargs = next(call for call in query.calls if call[0] == "upsert")
    assert args[0] == {"shop_url": SHOP, "api_key": API_KEY, "stage_url": BASE_URL}
    assert kwargs == {"on_conflict": "shop_url"}


def test_supabase_failures_become_credential_store_errors():
    store = SupabaseCredentialStore(_Client(_Query("api_data", error=RuntimeError("connection reset"))), table="api_data")

    with pytest.raises(CredentialStoreError):
        store.get(SHOP)
    with pytest.raises(CredentialStoreError):
        store.upsert(TenantCredential(shop_url=SHOP, api_key=API_KEY, base_url=BASE_URL))


def test_store_error_surfaces_as_503(config, carrier):
    broken = SupabaseCredentialStore(_Client(_Query("api_data", error=RuntimeError("down"))), table="api_data")
    dispatcher = GatewayDispatcher(CredentialResolver(broken), config=config, client_factory=carrier.client)
    try:
        result = dispatcher.get_wallet(SHOP)
    finally:
        dispatcher.shutdown()

    assert result.status_code == 503
    assert result.body["error"] == "credential_store_error"
    assert carrier.requests == []


def test_in_memory_store_starts_empty():
    assert InMemoryCredentialStore().get(SHOP) is None


def test_supabase_store_counts_configured_shops():
    query = _Query("api_data", rows=[{"shop_url": SHOP}])
    store = SupabaseCredentialStore(_Client(query), table="api_data")

    assert store.count() == 1
    assert ("select", ("shop_url",), {"count": "exact"}) in query.calls
