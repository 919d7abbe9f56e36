import asyncio

import httpx

from app.client.pincode_lookup import NOT_SERVICEABLE_PLACEHOLDER, PincodeAutofill, parse_resolution
from tests.helpers import mock_api


RESOLUTIONS = {
    "400001": {
        "pincode": "400001",
        "state": "Maharashtra",
        "cities": {
            "Mumbai": {"districts": {"Mumbai": {"areas": [{"name": "Fort"}, {"name": "Kalbadevi"}]}}},
            "Thane": {"districts": {"Thane": {"areas": [{"name": "Naupada"}]}}},
        },
    },
    "110001": {
        "pincode": "110001",
        "state": "Delhi",
        "cities": {"New Delhi": {"districts": {"New Delhi": {"areas": [{"name": "Janpath"}]}}}},
    },
}


def resolver(calls=None, delays=None):
    async def handler(request: httpx.Request) -> httpx.Response:
        pincode = request.url.path.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(pincode)
        if delays and pincode in delays:
            await asyncio.sleep(delays[pincode])
        if pincode not in RESOLUTIONS:
            return httpx.Response(404, json={"success": False, "kind": "not_found", "message": "Pincode not serviceable"})
        return httpx.Response(200, json=RESOLUTIONS[pincode])

    return handler


async def test_resolves_first_city_and_district():
    api = mock_api(resolver())
    lookup = PincodeAutofill(api)

    result = await lookup.lookup("400001")

    assert result.city == "Mumbai"
    assert result.state == "Maharashtra"
    assert result.district == "Mumbai"
    assert result.areas == ["Fort", "Kalbadevi"]
    assert lookup.area_selector_enabled
    await api.aclose()


async def test_bad_format_makes_no_call():
    calls = []
    api = mock_api(resolver(calls))
    lookup = PincodeAutofill(api)

    for value in ("4000", "4000012", "40000a", ""):
        result = await lookup.lookup(value)
        assert result.areas == []
        assert result.city == ""

    assert calls == []
    await api.aclose()


async def test_unknown_pincode_is_not_serviceable():
    api = mock_api(resolver())
    lookup = PincodeAutofill(api)

    result = await lookup.lookup("999999")

    assert not result.serviceable
    assert result.pincode == "999999"
    assert not lookup.area_selector_enabled
    assert lookup.area_placeholder == NOT_SERVICEABLE_PLACEHOLDER
    assert lookup.error.kind == "not_found"
    await api.aclose()


async def test_newer_pincode_wins():
    api = mock_api(resolver(delays={"400001": 0.2}))
    lookup = PincodeAutofill(api)

    slow = asyncio.create_task(lookup.lookup("400001"))
    await asyncio.sleep(0.02)
    fast = await lookup.lookup("110001")
    await slow

    assert fast.city == "New Delhi"
    assert lookup.result.city == "New Delhi"
    assert not lookup.loading
    await api.aclose()


def test_parse_resolution_handles_empty_cities():
    result = parse_resolution("400001", {"state": "Maharashtra", "cities": {}})
    assert result.areas == []
    assert not result.serviceable
