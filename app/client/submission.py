"""
Booking submission.

Order of work on Submit:
1. every wizard guard must pass (no network call otherwise)
2. staged images, if any, go up together in one multipart request; a failed
   upload ends the attempt
3. the booking is posted with the wizard's idempotency key

The submit control stays locked while a request is in flight and for good
after a success. The form is not reset after a success.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.client.api_client import ApiError, BookingApiClient, SessionExpired
from app.client.wizard import BookingWizard


logger = logging.getLogger(__name__)

MSG_REQUIRED_FIELDS = "Please complete the required fields before booking."
MSG_SUBMIT_FAILED = "Failed to submit booking. Please try again."
MSG_UPLOAD_FAILED = "Failed to upload images. Please try again."
MSG_CHECK_FAILED = "Failed to check consignment availability"
MSG_NOT_ASSIGNED = (
    "No consignment numbers assigned to your account. "
    "Please contact admin to get consignment numbers assigned."
)
MSG_EXHAUSTED = (
    "All consignment numbers have been used. "
    "Please contact admin to get more consignment numbers assigned."
)


@dataclass
class SubmissionResult:
    success: bool
    booking_reference: Optional[str] = None
    consignment_number: Optional[int] = None
    error: Optional[str] = None
    replayed: bool = False


def friendly_error(error: ApiError) -> str:
    """Message shown for a failed booking call."""
    if error.kind == "validation":
        return MSG_REQUIRED_FIELDS
    return error.message or MSG_SUBMIT_FAILED


class BookingSubmitter:
    """Submits one BookingWizard and keeps the state the submit button renders from."""

    def __init__(self, api: BookingApiClient, wizard: BookingWizard, banner_ms: Optional[int] = None):
        self.api = api
        self.wizard = wizard
        self.banner_ms = api.settings.SUCCESS_BANNER_MS if banner_ms is None else banner_ms

        self.consignment_available: Optional[bool] = None
        self.consignment_error: Optional[str] = None

        self.in_flight = False
        self.succeeded = False
        self.submit_error: Optional[str] = None
        self.redirect_to: Optional[str] = None
        self.booking_reference: Optional[str] = None
        self.consignment_number: Optional[int] = None

        self.show_success_banner = False
        self._banner_task: Optional[asyncio.Task] = None

    @property
    def submit_disabled(self) -> bool:
        return self.in_flight or self.succeeded or self.consignment_available is False

    @property
    def success_banner_text(self) -> Optional[str]:
        if not self.show_success_banner or self.consignment_number is None:
            return None
        return f"Consignment #{self.consignment_number}"

    async def check_consignment(self) -> bool:
        """Ask whether the user still has a free consignment number."""
        try:
            data = await self.api.check_consignment()
        except SessionExpired as e:
            self.redirect_to = e.login_route
            self.consignment_available = False
            self.consignment_error = e.message
            return False
        except ApiError as e:
            self.consignment_available = False
            self.consignment_error = e.message or MSG_CHECK_FAILED
            return False

        if not (data.get("success") and data.get("hasAssignment")):
            self.consignment_available = False
            self.consignment_error = MSG_NOT_ASSIGNED
            return False

        available = (data.get("summary") or {}).get("availableCount") or 0
        self.consignment_available = available > 0
        self.consignment_error = None if available > 0 else MSG_EXHAUSTED
        return self.consignment_available

    async def submit(self) -> SubmissionResult:
        if self.submit_disabled:
            return SubmissionResult(success=False, error=self.submit_error)

        failing = self.wizard.first_failing_step()
        if failing is not None:
            step, message = failing
            self.wizard.go_to(step)
            self.wizard.step_error = message
            self.submit_error = message
            return SubmissionResult(success=False, error=message)

        self.in_flight = True
        self.submit_error = None
        try:
            return await self._submit()
        finally:
            self.in_flight = False

    async def _submit(self) -> SubmissionResult:
        uploaded: dict[str, list[dict[str, Any]]] = {}
        if self.wizard.has_staged_images:
            try:
                uploaded = await self.api.upload_images(self.wizard.package_images, self.wizard.invoice_images)
            except ApiError as e:
                logger.warning(f"Image upload failed: {e.message}")
                return self._fail(e, e.message or MSG_UPLOAD_FAILED)

        payload = self.wizard.build_payload(uploaded)
        try:
            data = await self.api.create_booking(payload, self.wizard.idempotency_key)
        except ApiError as e:
            logger.warning(f"Booking submission failed ({e.kind}): {e.message}")
            if e.code == "consignment_exhausted":
                self.consignment_available = False
                self.consignment_error = e.message
            return self._fail(e, friendly_error(e))

        booking = data.get("booking") or {}
        if not booking.get("consignmentNumber"):
            self.submit_error = "Booking created but no consignment number received"
            return SubmissionResult(success=False, error=self.submit_error)

        self.succeeded = True
        self.booking_reference = booking.get("bookingReference")
        self.consignment_number = booking.get("consignmentNumber")
        self._show_banner()
        return SubmissionResult(
            success=True,
            booking_reference=self.booking_reference,
            consignment_number=self.consignment_number,
            replayed=bool(data.get("replayed")),
        )

    def _fail(self, error: ApiError, message: str) -> SubmissionResult:
        if isinstance(error, SessionExpired):
            self.redirect_to = error.login_route
        self.submit_error = message
        self.show_success_banner = False
        return SubmissionResult(success=False, error=message)

    def _show_banner(self) -> None:
        if self._banner_task is not None and not self._banner_task.done():
            self._banner_task.cancel()
        self.show_success_banner = True
        self._banner_task = asyncio.create_task(self._hide_banner_later())

    async def _hide_banner_later(self) -> None:
        await asyncio.sleep(self.banner_ms / 1000)
        self.show_success_banner = False

    async def wait_banner(self) -> None:
        """Wait until the success banner has been dismissed."""
        if self._banner_task is not None:
            try:
                await self._banner_task
            except asyncio.CancelledError:
                pass
