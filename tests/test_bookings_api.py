from sqlalchemy import func, select

from app.database import async_session_factory
from app.models.consignment import ConsignmentUsage
from app.services.booking_rules import MSG_EWAYBILL_LENGTH
from app.services.consignment_service import MSG_NOT_ASSIGNED
from tests.helpers import FIRST_CONSIGNMENT, address, booking_payload, make_image


async def create(client, user, payload=None, key=None):
    headers = dict(user["headers"])
    if key:
        headers["Idempotency-Key"] = key
    return await client.post("/api/bookings", json=payload or booking_payload(), headers=headers)


async def usage_count() -> int:
    async with async_session_factory() as session:
        result = await session.execute(select(func.count(ConsignmentUsage.id)))
        return result.scalar()


async def test_create_booking_claims_first_number(client, medicine_user, consignment_pool, sent_emails):
    response = await create(client, medicine_user)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking created successfully"
    assert body["booking"]["consignmentNumber"] == FIRST_CONSIGNMENT
    assert body["booking"]["bookingReference"] == str(FIRST_CONSIGNMENT)
    assert body["booking"]["status"] == "pending"


async def test_charges_are_recomputed_on_the_server(client, medicine_user, consignment_pool, sent_emails):
    payload = booking_payload(charges={"freightCharge": "1.00", "grandTotal": "1.00"})
    created = (await create(client, medicine_user, payload)).json()

    response = await client.get(f"/api/bookings/{created['booking']['id']}", headers=medicine_user["headers"])

    booking = response.json()["booking"]
    assert booking["charges"]["freightCharge"] == "100.00"
    assert booking["charges"]["gstAmount"] == "18.00"
    assert booking["charges"]["grandTotal"] == "118.00"
    assert booking["shipment"]["volumetricWeight"] == 0.2
    assert booking["shipment"]["chargeableWeight"] == 2.0


async def test_without_gst_only_freight_and_total_are_kept(client, medicine_user, consignment_pool, sent_emails):
    payload = booking_payload(billing={"gst": "No", "billType": ""})
    created = (await create(client, medicine_user, payload)).json()

    response = await client.get(f"/api/bookings/{created['booking']['id']}", headers=medicine_user["headers"])

    assert response.json()["booking"]["charges"] == {"freightCharge": "100.00", "grandTotal": "100.00"}


async def test_numbers_are_claimed_in_order(client, medicine_user, consignment_pool, sent_emails):
    first = (await create(client, medicine_user)).json()
    second = (await create(client, medicine_user)).json()

    assert first["booking"]["consignmentNumber"] == FIRST_CONSIGNMENT
    assert second["booking"]["consignmentNumber"] == FIRST_CONSIGNMENT + 1


async def test_booking_without_pool_is_rejected(client, medicine_user):
    response = await create(client, medicine_user)

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "kind": "conflict",
        "code": "consignment_exhausted",
        "message": MSG_NOT_ASSIGNED,
    }


async def test_invalid_booking_lists_every_rule(client, medicine_user, consignment_pool):
    payload = booking_payload(
        origin=address("Sunrise Pharma", "12345"),
        invoice={"invoiceValue": "60000", "eWaybillNumber": ""},
    )
    response = await create(client, medicine_user, payload)

    assert response.status_code == 400
    body = response.json()
    assert body["kind"] == "validation"
    assert body["message"] == "Please enter a valid 10-digit mobile number"
    assert body["details"] == [
        "Please enter a valid 10-digit mobile number",
        "E-Waybill Number is required for invoice values above ₹50,000",
    ]
    assert await usage_count() == 0


async def test_schema_errors_use_the_error_body(client, medicine_user):
    response = await client.post("/api/bookings", json={"origin": {}}, headers=medicine_user["headers"])

    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "validation"
    assert body["message"] == "Invalid request data"
    assert body["details"]


async def test_idempotent_replay_returns_first_booking(client, medicine_user, consignment_pool, sent_emails):
    payload = booking_payload(origin=address("Sunrise Pharma", "9876543210", email="dispatch@sunrise.in"))
    first = await create(client, medicine_user, payload, key="wizard-1")
    replay = await create(client, medicine_user, payload, key="wizard-1")

    assert first.status_code == 201
    assert replay.status_code == 200
    assert replay.json()["message"] == "Booking already submitted"
    assert replay.json()["replayed"] is True
    assert first.json()["replayed"] is False
    assert replay.json()["booking"]["consignmentNumber"] == first.json()["booking"]["consignmentNumber"]
    assert await usage_count() == 1
    assert len(sent_emails) == 1


async def test_confirmation_mail_goes_to_both_parties(client, medicine_user, consignment_pool, sent_emails):
    payload = booking_payload(
        origin=address("Sunrise Pharma", "9876543210", email="dispatch@sunrise.in"),
        destination=address("City Hospital", "9123456780", email="stores@cityhospital.in"),
    )
    await create(client, medicine_user, payload)

    assert sorted(mail["to"] for mail in sent_emails) == ["dispatch@sunrise.in", "stores@cityhospital.in"]
    assert str(FIRST_CONSIGNMENT) in sent_emails[0]["subject"] + sent_emails[0]["html"]


async def test_lookup_returns_previous_addresses(client, medicine_user, consignment_pool, sent_emails):
    await create(client, medicine_user)

    response = await client.get(
        "/api/bookings/lookup",
        params={"phone": "9876543210", "role": "origin"},
        headers=medicine_user["headers"],
    )

    body = response.json()
    assert body["count"] == 1
    assert body["addresses"][0]["name"] == "Sunrise Pharma"
    assert body["addresses"][0]["role"] == "origin"

    response = await client.get(
        "/api/bookings/lookup",
        params={"phone": "9876543210", "role": "destination"},
        headers=medicine_user["headers"],
    )
    assert response.json()["count"] == 0


async def test_list_only_shows_own_bookings(client, medicine_user, other_medicine_user, consignment_pool, sent_emails):
    await create(client, medicine_user)

    mine = await client.get("/api/bookings", headers=medicine_user["headers"])
    theirs = await client.get("/api/bookings", headers=other_medicine_user["headers"])

    assert mine.json()["pagination"]["total"] == 1
    assert theirs.json()["pagination"]["total"] == 0


async def test_other_users_cannot_read_a_booking(client, medicine_user, other_medicine_user, super_admin, consignment_pool, sent_emails):
    booking = (await create(client, medicine_user)).json()["booking"]

    forbidden = await client.get(f"/api/bookings/{booking['id']}", headers=other_medicine_user["headers"])
    allowed = await client.get(f"/api/bookings/consignment/{FIRST_CONSIGNMENT}", headers=super_admin["headers"])

    assert forbidden.status_code == 403
    assert forbidden.json()["kind"] == "forbidden"
    assert allowed.status_code == 200
    assert allowed.json()["booking"]["id"] == booking["id"]


async def test_medicine_user_may_only_cancel(client, medicine_user, super_admin, consignment_pool, sent_emails):
    booking = (await create(client, medicine_user)).json()["booking"]
    url = f"/api/bookings/{booking['id']}/status"

    confirm = await client.patch(url, json={"status": "confirmed"}, headers=medicine_user["headers"])
    assert confirm.status_code == 403

    cancel = await client.patch(url, json={"status": "cancelled"}, headers=medicine_user["headers"])
    assert cancel.status_code == 200
    assert cancel.json()["booking"]["status"] == "cancelled"

    reopen = await client.patch(url, json={"status": "confirmed"}, headers=super_admin["headers"])
    assert reopen.status_code == 409


async def test_admin_moves_booking_forward(client, medicine_user, super_admin, consignment_pool, sent_emails):
    booking = (await create(client, medicine_user)).json()["booking"]
    url = f"/api/bookings/{booking['id']}/status"

    response = await client.patch(url, json={"status": "in_transit"}, headers=super_admin["headers"])

    assert response.status_code == 200
    assert response.json()["message"] == "Booking status updated to in_transit"


async def test_requests_without_token_are_unauthorized(client):
    response = await client.get("/api/bookings")

    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"


async def test_admin_cannot_create_bookings(client, super_admin):
    response = await client.post("/api/bookings", json=booking_payload(), headers=super_admin["headers"])
    assert response.status_code == 403


async def test_upload_images(client, medicine_user, stored_files):
    files = [
        ("packageImages", ("box.png", make_image("PNG"), "image/png")),
        ("invoiceImages[]", ("bill.jpg", make_image("JPEG"), "image/jpeg")),
    ]
    response = await client.post("/api/bookings/upload-images", files=files, headers=medicine_user["headers"])

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["packageImages"][0]["fileName"] == "box.png"
    assert data["packageImages"][0]["url"].startswith("https://storage.courierops.in/uploads/medicine-bookings/package-images/")
    assert data["invoiceImages"][0]["mimeType"] == "image/jpeg"
    assert len(stored_files) == 2


async def test_upload_rejects_mismatched_content(client, medicine_user, stored_files):
    files = [("packageImages", ("box.png", make_image("JPEG"), "image/png"))]
    response = await client.post("/api/bookings/upload-images", files=files, headers=medicine_user["headers"])

    assert response.status_code == 400
    assert response.json()["kind"] == "validation"
    assert stored_files == []


async def test_upload_without_files(client, medicine_user, stored_files):
    response = await client.post(
        "/api/bookings/upload-images",
        data={"note": "nothing"},
        headers=medicine_user["headers"],
    )

    assert response.status_code == 400
    assert response.json()["message"] == "No files uploaded"


async def test_consignment_availability(client, medicine_user, consignment_pool, sent_emails):
    await create(client, medicine_user)

    response = await client.get("/api/consignment/assignments", headers=medicine_user["headers"])

    body = response.json()
    assert body["hasAssignment"] is True
    assert body["summary"] == {
        "totalAssigned": 10,
        "usedCount": 1,
        "availableCount": 9,
        "usagePercentage": 10.0,
    }
    assert body["message"] == "9 consignment numbers available"


async def test_overlong_ewaybill_is_rejected_not_truncated(client, medicine_user, consignment_pool):
    for ewaybill in ("1234567890123456", "12345678901A", "1234-5678-9012"):
        payload = booking_payload(invoice={"invoiceValue": "60000", "eWaybillNumber": ewaybill})
        response = await create(client, medicine_user, payload)

        assert response.status_code == 400, ewaybill
        assert response.json()["details"] == [MSG_EWAYBILL_LENGTH]

    assert await usage_count() == 0


async def test_twelve_digit_ewaybill_is_stored_as_sent(client, medicine_user, consignment_pool, sent_emails):
    payload = booking_payload(invoice={"invoiceValue": "60000", "eWaybillNumber": " 123456789012 "})
    created = (await create(client, medicine_user, payload)).json()

    response = await client.get(f"/api/bookings/{created['booking']['id']}", headers=medicine_user["headers"])

    assert response.json()["booking"]["invoice"]["eWaybillNumber"] == "123456789012"


async def test_negative_numbers_are_rejected_before_claiming(client, medicine_user, consignment_pool):
    negative_rate = booking_payload(shipment={"perKgWeight": "-50"})
    negative_length = booking_payload(
        shipment={"dimensions": [{"length": "-10", "breadth": "10", "height": "10", "unit": "cm"}]},
    )
    negative_invoice = booking_payload(invoice={"invoiceValue": "-1"})

    for payload in (negative_rate, negative_length, negative_invoice):
        response = await create(client, medicine_user, payload)

        assert response.status_code == 422
        assert response.json()["kind"] == "validation"

    assert await usage_count() == 0
