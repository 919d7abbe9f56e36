"""Pincode auto-fill: state, city, district and the serviceable areas of a pincode."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from app.client.api_client import ApiError, BookingApiClient, SessionExpired
from app.services.booking_rules import is_valid_pincode


logger = logging.getLogger(__name__)

NOT_SERVICEABLE_PLACEHOLDER = "Pincode not serviceable"


@dataclass
class PincodeResult:
    pincode: str = ""
    state: str = ""
    city: str = ""
    district: str = ""
    areas: list[str] = field(default_factory=list)

    @property
    def serviceable(self) -> bool:
        return bool(self.areas)


def parse_resolution(pincode: str, data: dict[str, Any]) -> PincodeResult:
    """
    Flatten the resolver response.

    The first city and its first district fill the address; the areas of
    that district become the choices.
    """
    cities = data.get("cities") or {}
    if not cities:
        return PincodeResult(pincode=pincode)

    city, city_data = next(iter(cities.items()))
    districts = (city_data or {}).get("districts") or {}
    if not districts:
        return PincodeResult(pincode=pincode, state=data.get("state") or "", city=city)

    district, district_data = next(iter(districts.items()))
    areas = [a.get("name") for a in (district_data or {}).get("areas") or [] if a.get("name")]
    return PincodeResult(
        pincode=pincode,
        state=data.get("state") or "",
        city=city,
        district=district,
        areas=areas,
    )


class PincodeAutofill:
    """Resolves the pincode typed in one address form."""

    def __init__(self, api: BookingApiClient):
        self.api = api
        self.result = PincodeResult()
        self.loading = False
        self.error: Optional[ApiError] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def area_selector_enabled(self) -> bool:
        return self.result.serviceable

    @property
    def area_placeholder(self) -> str:
        if self.loading:
            return "Loading areas..."
        if self.result.pincode and not self.result.serviceable:
            return NOT_SERVICEABLE_PLACEHOLDER
        return "Select area"

    async def lookup(self, pincode: str) -> PincodeResult:
        """
        Resolve a pincode, superseding any lookup still in flight.

        Anything but exactly six digits clears the result without a call.
        A resolver error or empty answer reads as "not serviceable".
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.error = None

        pincode = (pincode or "").strip()
        if not is_valid_pincode(pincode):
            self.result = PincodeResult()
            self.loading = False
            return self.result

        self.loading = True
        task = asyncio.create_task(self.api.resolve_pincode(pincode))
        self._task = task
        try:
            data = await task
        except asyncio.CancelledError:
            if task.cancelled() and self._task is not task:
                # superseded by a newer lookup
                return self.result
            raise
        except SessionExpired as e:
            self.error = e
            data = {}
        except ApiError as e:
            logger.info(f"Pincode {pincode} treated as not serviceable: {e.message}")
            self.error = e
            data = {}

        if self._task is not task:
            return self.result

        self.loading = False
        self._task = None
        self.result = parse_resolution(pincode, data)
        return self.result
