import asyncio

import httpx

from app.client.address_autofill import AddressAutofill, AutofillState
from app.client.wizard import BookingWizard
from tests.helpers import address, mock_api


def lookup_handler(addresses_by_phone, calls=None, delays=None):
    async def handler(request: httpx.Request) -> httpx.Response:
        phone = request.url.params["phone"]
        if calls is not None:
            calls.append((phone, request.url.params["role"]))
        if delays and phone in delays:
            await asyncio.sleep(delays[phone])
        addresses = addresses_by_phone.get(phone, [])
        return httpx.Response(200, json={"success": True, "count": len(addresses), "addresses": addresses})

    return handler


def saved(name: str, phone: str) -> dict:
    return {"id": f"origin-{name}", "role": "origin", **address(name, phone)}


async def test_lookup_waits_for_ten_digits():
    calls = []
    api = mock_api(lookup_handler({}, calls))
    autofill = AddressAutofill(api, "origin")

    for digit in "987654321":
        autofill.enter_digit(digit)
    await autofill.wait()
    assert calls == []
    assert autofill.state == AutofillState.AWAITING_PHONE

    autofill.enter_digit("0")
    await autofill.wait()
    assert calls == [("9876543210", "origin")]
    await api.aclose()


async def test_found_addresses_preselect_first_but_need_confirmation():
    phone = "9876543210"
    api = mock_api(lookup_handler({phone: [saved("Sunrise Pharma", phone), saved("Sunrise Depot", phone)]}))
    autofill = AddressAutofill(api, "origin")

    autofill.set_phone(phone)
    await autofill.wait()

    assert autofill.state == AutofillState.ADDRESS_FOUND
    assert autofill.user_found is True
    assert autofill.selected_index == 0
    assert not autofill.confirmed

    autofill.select(1)
    chosen = autofill.confirm()
    assert autofill.confirmed
    assert chosen["name"] == "Sunrise Depot"
    assert chosen["mobileNumber"] == phone
    await api.aclose()


async def test_no_addresses_opens_manual_form():
    api = mock_api(lookup_handler({}))
    autofill = AddressAutofill(api, "destination")

    autofill.set_phone("9123456780")
    await autofill.wait()

    assert autofill.state == AutofillState.ADDRESS_NOT_FOUND
    assert autofill.user_found is False
    assert autofill.show_manual_form
    await api.aclose()


async def test_superseded_lookup_never_lands():
    old, new = "9876543210", "9123456780"
    api = mock_api(lookup_handler({old: [saved("Old Address", old)]}, delays={old: 0.2}))
    autofill = AddressAutofill(api, "origin")

    autofill.set_phone(old)
    await asyncio.sleep(0.02)
    autofill.set_phone(new)
    await autofill.wait()
    # give a leaked old request every chance to land
    await asyncio.sleep(0.25)

    assert autofill.phone == new
    assert autofill.addresses == []
    assert autofill.state == AutofillState.ADDRESS_NOT_FOUND
    await api.aclose()


async def test_add_new_address_keeps_phone():
    phone = "9876543210"
    api = mock_api(lookup_handler({phone: [saved("Sunrise Pharma", phone)]}))
    autofill = AddressAutofill(api, "origin")
    wizard = BookingWizard()

    autofill.set_phone(phone)
    await autofill.wait()
    autofill.add_new_address()
    wizard.use_manual_entry("origin", autofill.phone)

    assert autofill.selected_index is None
    assert autofill.manual_entry
    assert wizard.origin["mobileNumber"] == phone
    assert wizard.address_entry["origin"]["manual"]
    await api.aclose()


async def test_reset_clears_dependent_state():
    phone = "9876543210"
    api = mock_api(lookup_handler({phone: [saved("Sunrise Pharma", phone)]}))
    autofill = AddressAutofill(api, "origin")

    autofill.set_phone(phone)
    await autofill.wait()
    autofill.confirm()
    autofill.reset()

    assert autofill.phone == ""
    assert autofill.addresses == []
    assert autofill.selected_index is None
    assert not autofill.confirmed
    assert not autofill.show_manual_form
    assert autofill.state == AutofillState.AWAITING_PHONE
    await api.aclose()


async def test_lookup_failure_falls_back_to_manual_entry():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "kind": "internal", "message": "Internal server error"})

    api = mock_api(handler)
    autofill = AddressAutofill(api, "origin")
    autofill.set_phone("9876543210")
    await autofill.wait()

    assert autofill.state == AutofillState.ADDRESS_NOT_FOUND
    assert autofill.show_manual_form
    assert autofill.error.kind == "internal"
    await api.aclose()


async def test_non_digits_are_ignored():
    api = mock_api(lookup_handler({}))
    autofill = AddressAutofill(api, "origin")
    autofill.enter_digit("a")
    autofill.set_phone("98-765 43210")
    assert autofill.phone == "9876543210"
    await autofill.wait()
    autofill.backspace()
    assert autofill.phone == "987654321"
    assert autofill.state == AutofillState.AWAITING_PHONE
    await api.aclose()
