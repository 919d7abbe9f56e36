import asyncio
import json

import httpx

from app.client.submission import (
    MSG_EXHAUSTED,
    MSG_NOT_ASSIGNED,
    MSG_REQUIRED_FIELDS,
    BookingSubmitter,
)
from app.client.wizard import BookingWizard, Step
from tests.helpers import mock_api, ready_wizard


BOOKED = {
    "success": True,
    "message": "Booking created successfully",
    "booking": {"bookingReference": "BK1", "consignmentNumber": 1001},
}


class Recorder:
    """MockTransport handler that answers by path and remembers every request."""

    def __init__(self, responses, delay: float = 0):
        self.responses = responses
        self.delay = delay
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        status, body = self.responses[request.url.path]
        return httpx.Response(status, json=body)

    def paths(self):
        return [r.url.path for r in self.requests]


async def test_no_images_skips_upload_and_shows_consignment():
    recorder = Recorder({"/api/bookings": (201, BOOKED)})
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert result.success
    assert result.consignment_number == 1001
    assert recorder.paths() == ["/api/bookings"]
    assert submitter.success_banner_text == "Consignment #1001"
    assert submitter.submit_disabled
    await api.aclose()


async def test_no_further_submits_after_success():
    recorder = Recorder({"/api/bookings": (201, BOOKED)})
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    await submitter.submit()
    again = await submitter.submit()

    assert not again.success
    assert recorder.paths() == ["/api/bookings"]
    await api.aclose()


async def test_success_banner_dismisses_itself_without_reset():
    recorder = Recorder({"/api/bookings": (201, BOOKED)})
    api = mock_api(recorder)
    wizard = ready_wizard()
    submitter = BookingSubmitter(api, wizard)

    await submitter.submit()
    await submitter.wait_banner()

    assert not submitter.show_success_banner
    assert submitter.consignment_number == 1001
    assert wizard.step == Step.PREVIEW
    assert wizard.origin["name"] == "Sunrise Pharma"
    await api.aclose()


async def test_images_upload_once_then_booking_carries_urls():
    uploaded = {
        "success": True,
        "message": "2 image(s) uploaded successfully",
        "data": {
            "packageImages": [{"url": "https://storage.courierops.in/p.png", "fileName": "p.png"}],
            "invoiceImages": [{"url": "https://storage.courierops.in/i.png", "fileName": "i.png"}],
        },
    }
    recorder = Recorder({
        "/api/bookings/upload-images": (200, uploaded),
        "/api/bookings": (201, BOOKED),
    })
    api = mock_api(recorder)
    wizard = ready_wizard()
    wizard.stage_images("package", [("p.png", b"png-bytes", "image/png")])
    wizard.stage_images("invoice", [("i.png", b"png-bytes", "image/png")])
    submitter = BookingSubmitter(api, wizard)

    result = await submitter.submit()

    assert result.success
    assert recorder.paths() == ["/api/bookings/upload-images", "/api/bookings"]
    upload_body = recorder.requests[0].content
    assert b'name="packageImages"' in upload_body
    assert b'name="invoiceImages"' in upload_body

    booking_request = recorder.requests[1]
    payload = json.loads(booking_request.content)
    assert payload["package"]["packageImages"][0]["url"] == "https://storage.courierops.in/p.png"
    assert payload["invoice"]["invoiceImages"][0]["fileName"] == "i.png"
    assert booking_request.headers["Idempotency-Key"] == wizard.idempotency_key
    await api.aclose()


async def test_upload_failure_aborts_submission():
    recorder = Recorder({
        "/api/bookings/upload-images": (
            400,
            {"success": False, "kind": "validation", "message": "Image too large: 6.0MB. Maximum: 5MB"},
        ),
        "/api/bookings": (201, BOOKED),
    })
    api = mock_api(recorder)
    wizard = ready_wizard()
    wizard.stage_images("package", [("big.png", b"x", "image/png")])
    submitter = BookingSubmitter(api, wizard)

    result = await submitter.submit()

    assert not result.success
    assert submitter.submit_error == "Image too large: 6.0MB. Maximum: 5MB"
    assert recorder.paths() == ["/api/bookings/upload-images"]
    assert not submitter.submit_disabled
    await api.aclose()


async def test_validation_errors_get_a_generic_message():
    recorder = Recorder({
        "/api/bookings": (
            400,
            {"success": False, "kind": "validation", "message": "Please enter Materials", "details": ["Please enter Materials"]},
        ),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert result.error == MSG_REQUIRED_FIELDS
    await api.aclose()


async def test_other_errors_are_shown_verbatim():
    recorder = Recorder({
        "/api/bookings": (409, {
            "success": False,
            "kind": "conflict",
            "code": "consignment_exhausted",
            "message": MSG_EXHAUSTED,
        }),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert result.error == MSG_EXHAUSTED
    assert submitter.consignment_available is False
    assert submitter.submit_disabled
    await api.aclose()


async def test_incomplete_wizard_never_reaches_the_network():
    recorder = Recorder({})
    api = mock_api(recorder)
    wizard = BookingWizard()
    submitter = BookingSubmitter(api, wizard)

    result = await submitter.submit()

    assert not result.success
    assert recorder.requests == []
    assert wizard.step == Step.ORIGIN
    assert wizard.step_error == result.error
    await api.aclose()


async def test_submit_locked_while_in_flight():
    recorder = Recorder({"/api/bookings": (201, BOOKED)}, delay=0.1)
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    first = asyncio.create_task(submitter.submit())
    await asyncio.sleep(0.02)
    assert submitter.in_flight
    assert submitter.submit_disabled
    second = await submitter.submit()
    await first

    assert not second.success
    assert recorder.paths() == ["/api/bookings"]
    await api.aclose()


async def test_expired_session_redirects_to_login():
    recorder = Recorder({
        "/api/bookings": (401, {"success": False, "kind": "unauthorized", "message": "Could not validate credentials"}),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert not result.success
    assert submitter.redirect_to == "/medicine/login"
    assert api.session.get_token() is None
    await api.aclose()


async def test_consignment_check_available():
    recorder = Recorder({
        "/api/consignment/assignments": (
            200,
            {"success": True, "hasAssignment": True, "summary": {"availableCount": 7}},
        ),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    assert await submitter.check_consignment()
    assert submitter.consignment_error is None
    assert not submitter.submit_disabled
    await api.aclose()


async def test_consignment_check_exhausted_blocks_submit():
    recorder = Recorder({
        "/api/consignment/assignments": (
            200,
            {"success": True, "hasAssignment": True, "summary": {"availableCount": 0}},
        ),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    assert not await submitter.check_consignment()
    assert submitter.consignment_error == MSG_EXHAUSTED
    assert submitter.submit_disabled

    result = await submitter.submit()
    assert not result.success
    assert recorder.paths() == ["/api/consignment/assignments"]
    await api.aclose()


async def test_consignment_check_without_assignment():
    recorder = Recorder({
        "/api/consignment/assignments": (200, {"success": True, "hasAssignment": False, "summary": {}}),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    assert not await submitter.check_consignment()
    assert submitter.consignment_error == MSG_NOT_ASSIGNED
    await api.aclose()


async def test_replayed_booking_is_reported():
    replay = dict(BOOKED, message="Booking already submitted", replayed=True)
    recorder = Recorder({"/api/bookings": (200, replay)})
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert result.success
    assert result.replayed
    await api.aclose()


async def test_conflict_without_exhausted_code_keeps_submit_enabled():
    recorder = Recorder({
        "/api/bookings": (409, {
            "success": False,
            "kind": "conflict",
            "message": "Could not allocate a consignment number, please retry",
        }),
    })
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert not result.success
    assert submitter.consignment_available is None
    assert not submitter.submit_disabled
    await api.aclose()


async def test_created_booking_is_not_reported_as_replayed():
    recorder = Recorder({"/api/bookings": (201, dict(BOOKED, replayed=False))})
    api = mock_api(recorder)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert result.success
    assert not result.replayed
    await api.aclose()


async def test_html_success_body_fails_without_raising():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy page</html>", headers={"content-type": "text/html"})

    api = mock_api(handler)
    submitter = BookingSubmitter(api, ready_wizard())

    result = await submitter.submit()

    assert not result.success
    assert result.error
    assert not submitter.succeeded
    assert not submitter.submit_disabled
    await api.aclose()
