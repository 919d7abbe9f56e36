import httpx
import pytest

from app.client.api_client import MSG_BAD_RESPONSE, ApiError, SessionExpired
from tests.helpers import mock_api


async def test_bearer_token_and_idempotency_key_are_sent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["key"] = request.headers.get("Idempotency-Key")
        seen["path"] = request.url.path
        return httpx.Response(201, json={"success": True, "booking": {"consignmentNumber": 1001}})

    async with mock_api(handler) as api:
        data = await api.create_booking({"origin": {}}, idempotency_key="abc123")

    assert data["booking"]["consignmentNumber"] == 1001
    assert seen == {"auth": "Bearer medicine-token", "key": "abc123", "path": "/api/bookings"}


async def test_unauthorized_clears_session():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "kind": "unauthorized", "message": "Could not validate credentials"})

    api = mock_api(handler)
    with pytest.raises(SessionExpired) as exc_info:
        await api.check_consignment()
    await api.aclose()

    assert exc_info.value.login_route == "/medicine/login"
    assert exc_info.value.kind == "unauthorized"
    assert api.session.get_token() is None


async def test_error_kind_comes_from_the_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"success": False, "kind": "conflict", "message": "Pricing is already approved"})

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.create_booking({})

    assert exc_info.value.kind == "conflict"
    assert exc_info.value.message == "Pricing is already approved"
    assert exc_info.value.status_code == 409


async def test_error_kind_falls_back_to_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, text="bad input")

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.resolve_pincode("400001")

    assert exc_info.value.kind == "validation"
    assert exc_info.value.message == "Request failed with status 422"


async def test_network_failure_becomes_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.lookup_addresses("9876543210", "origin")

    assert exc_info.value.kind == "network"


async def test_login_stores_token():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "token": "fresh", "user": {"role": "medicine"}})

    async with mock_api(handler, token=None) as api:
        await api.login("pharmacy@courierops.in", "Secret@123")

    assert api.session.get_token() == "fresh"
    assert api.session.get_user() == {"role": "medicine"}


async def test_html_success_body_becomes_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy login page</html>", headers={"content-type": "text/html"})

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.check_consignment()

    assert exc_info.value.kind == "internal"
    assert exc_info.value.message == MSG_BAD_RESPONSE
    assert exc_info.value.status_code == 200


async def test_non_object_json_body_becomes_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["not", "an", "object"])

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.lookup_addresses("9876543210", "origin")

    assert exc_info.value.kind == "internal"


async def test_login_without_token_leaves_session_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True})

    async with mock_api(handler, token=None) as api:
        with pytest.raises(ApiError):
            await api.login("pharmacy@courierops.in", "Secret@123")

    assert api.session.get_token() is None


async def test_error_code_is_carried_over():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={
            "success": False,
            "kind": "conflict",
            "code": "consignment_exhausted",
            "message": "No consignment numbers left",
        })

    async with mock_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.create_booking({})

    assert exc_info.value.code == "consignment_exhausted"
