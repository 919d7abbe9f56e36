"""
Address auto-fill for the Origin and Destination steps.

The phone number is typed digit by digit. Ten digits start a lookup of
addresses previously used with that number; the lookup waits a short
debounce first and is cancelled when the number changes again, so a stale
answer can never overwrite newer input.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from app.client.api_client import ApiError, BookingApiClient, SessionExpired
from app.services.booking_rules import is_valid_mobile


logger = logging.getLogger(__name__)

PHONE_LENGTH = 10


class AutofillState(str, Enum):
    AWAITING_PHONE = "awaiting_phone"
    LOOKING_UP = "looking_up"
    ADDRESS_FOUND = "address_found"
    ADDRESS_NOT_FOUND = "address_not_found"


class AddressAutofill:
    """Phone entry and address selection for one role ("origin" or "destination")."""

    def __init__(self, api: BookingApiClient, role: str, debounce_ms: Optional[int] = None):
        self.api = api
        self.role = role
        self.debounce_ms = api.settings.LOOKUP_DEBOUNCE_MS if debounce_ms is None else debounce_ms

        self.phone = ""
        self.state = AutofillState.AWAITING_PHONE
        self.addresses: list[dict[str, Any]] = []
        self.selected_index: Optional[int] = None
        self.confirmed = False
        self.show_manual_form = False
        self.user_found: Optional[bool] = None
        self.error: Optional[ApiError] = None

        self._task: Optional[asyncio.Task] = None

    # ==================== PHONE ENTRY ====================

    def enter_digit(self, digit: str) -> None:
        """Append one typed digit; anything else is ignored."""
        if len(digit) != 1 or not digit.isdigit() or len(self.phone) >= PHONE_LENGTH:
            return
        self.set_phone(self.phone + digit)

    def backspace(self) -> None:
        if self.phone:
            self.set_phone(self.phone[:-1])

    def set_phone(self, value: str) -> None:
        """Replace the whole number (paste). Non-digits are dropped."""
        phone = "".join(ch for ch in value if ch.isdigit())[:PHONE_LENGTH]
        if phone == self.phone:
            return
        self._cancel_pending()
        self._clear_results()
        self.phone = phone
        if is_valid_mobile(phone):
            self.state = AutofillState.LOOKING_UP
            self._task = asyncio.create_task(self._lookup(phone))

    def reset(self) -> None:
        """Change number: forget the number and everything looked up for it."""
        self._cancel_pending()
        self._clear_results()
        self.phone = ""

    async def wait(self) -> None:
        """Wait for the pending lookup, if any, to land."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ==================== SELECTION ====================

    def select(self, index: int) -> None:
        if not 0 <= index < len(self.addresses):
            raise IndexError(f"No address at position {index}")
        self.selected_index = index
        self.confirmed = False

    def confirm(self) -> Optional[dict[str, Any]]:
        """Accept the selected address. The typed phone number is kept."""
        address = self.selected_address
        if address is None:
            return None
        self.confirmed = True
        return address

    def add_new_address(self) -> None:
        """Drop the selection and fall back to the manual form."""
        self.selected_index = None
        self.confirmed = False
        self.show_manual_form = True

    @property
    def selected_address(self) -> Optional[dict[str, Any]]:
        if self.selected_index is None:
            return None
        address = dict(self.addresses[self.selected_index])
        address["mobileNumber"] = self.phone
        return address

    @property
    def manual_entry(self) -> bool:
        return self.show_manual_form

    # ==================== INTERNALS ====================

    def _clear_results(self) -> None:
        self.state = AutofillState.AWAITING_PHONE
        self.addresses = []
        self.selected_index = None
        self.confirmed = False
        self.show_manual_form = False
        self.user_found = None
        self.error = None

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _lookup(self, phone: str) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        try:
            addresses = await self.api.lookup_addresses(phone, self.role)
        except SessionExpired as e:
            self.error = e
            self.state = AutofillState.AWAITING_PHONE
            return
        except ApiError as e:
            logger.info(f"Address lookup for {self.role} failed, falling back to manual entry: {e.message}")
            self.error = e
            addresses = []

        if phone != self.phone:
            return

        self.addresses = addresses
        if addresses:
            self.state = AutofillState.ADDRESS_FOUND
            self.user_found = True
            self.selected_index = 0
            self.show_manual_form = False
        else:
            self.state = AutofillState.ADDRESS_NOT_FOUND
            self.user_found = False
            self.show_manual_form = True
