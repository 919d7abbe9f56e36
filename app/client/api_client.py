"""
HTTP client of the booking API.

Every call goes through ``_request``: it adds the bearer token, clears the
session on 401 and turns error bodies into ApiError. Error bodies carry a
``kind`` (validation, conflict, not_found, unauthorized, forbidden, internal)
so callers never have to inspect message text.
"""
import logging
from typing import Any, Optional, Sequence, Tuple

import httpx

from app.client.config import ClientSettings, get_client_settings
from app.client.session import SessionContext


logger = logging.getLogger(__name__)

MSG_BAD_RESPONSE = "Unexpected response from the server. Please try again."

# (filename, content, content_type)
FileTuple = Tuple[str, bytes, str]


class ApiError(Exception):
    """Non-2xx response of the booking API."""

    def __init__(
        self,
        kind: str,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.details = details
        self.code = code


class SessionExpired(ApiError):
    """The server rejected the token; the session has been cleared."""

    def __init__(self, login_route: str, message: str = "Session expired. Please log in again."):
        super().__init__("unauthorized", message, 401)
        self.login_route = login_route


def _kind_for_status(status_code: int) -> str:
    if status_code == 403:
        return "forbidden"
    if status_code == 404:
        return "not_found"
    if status_code == 409:
        return "conflict"
    if 400 <= status_code < 500:
        return "validation"
    return "internal"


class BookingApiClient:
    """
    Async client over httpx.AsyncClient.

    Usage:
        async with BookingApiClient(session) as api:
            await api.resolve_pincode("400001")
    """

    def __init__(
        self,
        session: SessionContext,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.settings = settings or get_client_settings()
        self._client = httpx.AsyncClient(
            base_url=self.settings.BASE_URL,
            timeout=self.settings.TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.session.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, url, headers=self._headers(headers), **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ApiError("network", "Unable to reach the server. Please check your connection.") from e

        if response.status_code == 401:
            self.session.clear()
            raise SessionExpired(self.session.login_route)

        if response.is_error:
            raise self._error_from(response)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            logger.warning(f"{method} {url} returned a body that is not JSON")
            raise ApiError("internal", MSG_BAD_RESPONSE, response.status_code)
        if not isinstance(body, dict):
            raise ApiError("internal", MSG_BAD_RESPONSE, response.status_code)
        return body

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("message") or body.get("detail")
        if not isinstance(message, str) or not message:
            message = f"Request failed with status {response.status_code}"

        return ApiError(
            kind=body.get("kind") or _kind_for_status(response.status_code),
            message=message,
            status_code=response.status_code,
            details=body.get("details"),
            code=body.get("code"),
        )

    # ==================== AUTH ====================

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and store the token on the session."""
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise ApiError("internal", MSG_BAD_RESPONSE, 200)
        self.session.set(token, data.get("user"))
        return data

    # ==================== LOOKUPS ====================

    async def lookup_addresses(self, phone: str, role: str) -> list[dict[str, Any]]:
        data = await self._request("GET", "/bookings/lookup", params={"phone": phone, "role": role})
        return data.get("addresses") or []

    async def resolve_pincode(self, pincode: str) -> dict[str, Any]:
        return await self._request("GET", f"/pincode/{pincode}")

    async def check_consignment(self) -> dict[str, Any]:
        return await self._request("GET", "/consignment/assignments")

    # ==================== BOOKINGS ====================

    async def upload_images(
        self,
        package_images: Sequence[FileTuple],
        invoice_images: Sequence[FileTuple],
    ) -> dict[str, list[dict[str, Any]]]:
        """Upload every staged image in one multipart request."""
        files = [("packageImages", image) for image in package_images]
        files += [("invoiceImages", image) for image in invoice_images]
        data = await self._request("POST", "/bookings/upload-images", files=files)
        return data.get("data") or {"packageImages": [], "invoiceImages": []}

    async def create_booking(self, payload: dict[str, Any], idempotency_key: Optional[str] = None) -> dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return await self._request("POST", "/bookings", json=payload, headers=headers)

    async def cancel_booking(self, booking_id: str) -> dict[str, Any]:
        return await self._request("PATCH", f"/bookings/{booking_id}/status", json={"status": "cancelled"})
