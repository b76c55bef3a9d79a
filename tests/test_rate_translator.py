import pytest

from carrier_gateway.errors import NOT_APPLICABLE, CarrierProtocolError
from carrier_gateway.schemas.rates import RateRequest
from carrier_gateway.services.rates.translator import map_rate_response, normalize_rate_request, to_minor_units


def _rate(**overrides) -> RateRequest:
    payload = {
        "destination": {"country": "IT", "province": None, "city": "Milan", "postal_code": "20121"},
        "origin": {"country": "BG", "province": "", "city": "Sofia"},
        "currency": "USD",
        "items": [{}],
    }
    payload.update(overrides)
    return RateRequest.model_validate(payload)


def test_scenario_a_normalizes_province_currency_and_properties():
    normalized = normalize_rate_request(_rate(), ["IT"])

    assert normalized.destination.province == "Milan"
    assert normalized.currency == "EUR"
    assert normalized.items[0].properties == []
    assert normalized.origin.province == "Sofia"
    assert normalized.destination.latitude == 0
    assert normalized.destination.longitude == 0


def test_unlisted_destination_is_not_applicable():
    rate = _rate(destination={"country": "FR", "city": "Paris"})

    assert normalize_rate_request(rate, ["IT", "BG"]) is NOT_APPLICABLE


def test_empty_allow_list_admits_nothing():
    assert normalize_rate_request(_rate(), []) is NOT_APPLICABLE


def test_country_match_is_case_insensitive():
    rate = _rate(destination={"country": "it", "city": "Rome"})

    assert normalize_rate_request(rate, [" IT "]) is not NOT_APPLICABLE


def test_normalization_is_idempotent():
    once = normalize_rate_request(_rate(), ["IT"])
    twice = normalize_rate_request(once, ["IT"])

    assert twice == once
    assert twice.model_dump() == once.model_dump()


def test_input_is_not_mutated_and_extra_fields_pass_through():
    rate = _rate()
    normalized = normalize_rate_request(rate, ["IT"])

    assert rate.destination.province is None
    assert rate.currency == "USD"
    assert normalized.model_dump()["destination"]["postal_code"] == "20121"


def test_existing_province_and_coordinates_are_kept():
    rate = _rate(
        destination={"country": "IT", "province": "MI", "city": "Milan", "latitude": 45.46, "longitude": 9.19},
        currency="EUR",
        items=[{"properties": [{"name": "gift"}], "grams": 300}],
    )
    normalized = normalize_rate_request(rate, ["IT"])

    assert normalized.destination.province == "MI"
    assert normalized.destination.latitude == 45.46
    assert normalized.items[0].properties == [{"name": "gift"}]


@pytest.mark.parametrize("price, expected", [("12.5", 1250), ("9.99", 999), (3, 300), ("0.005", 1)])
def test_to_minor_units(price, expected):
    assert to_minor_units(price) == expected


def test_scenario_b_scales_rates_shape():
    mapped = map_rate_response({"rates": [{"total_price": "9.99"}]})

    assert mapped.model_dump(exclude_unset=True) == {"rates": [{"total_price": 999}]}


def test_rates_shape_keeps_carrier_fields():
    mapped = map_rate_response(
        {"rates": [{"service_name": "Express", "service_code": "EXP", "total_price": "12.5", "currency": "EUR"}]}
    )
    rate = mapped.model_dump()["rates"][0]

    assert rate == {"service_name": "Express", "service_code": "EXP", "total_price": 1250, "currency": "EUR"}


def test_items_shape_is_mapped_to_rates():
    mapped = map_rate_response({"data": {"items": [{"price": "4.20", "weight": 1.5, "service_type": "standard"}]}})
    rate = mapped.model_dump()["rates"][0]

    assert rate["total_price"] == 420
    assert rate["service_name"] == "standard"
    assert rate["weight"] == 1.5


@pytest.mark.parametrize(
    "payload",
    [
        {"rates": [{"total_price": "9.99"}, {"total_price": "abc"}]},
        {"rates": [{"service_name": "Express"}]},
        {"rates": [{"total_price": None}]},
        {"rates": [{"total_price": "9.99", "service_name": 42}]},
        {"data": {"items": [{"weight": 1}]}},
        {"status": "error"},
        ["not", "an", "object"],
    ],
)
def test_bad_carrier_payload_fails_whole_mapping(payload):
    with pytest.raises(CarrierProtocolError):
        map_rate_response(payload)
