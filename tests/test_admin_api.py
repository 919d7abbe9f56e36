from sqlalchemy import select

from app.database import async_session_factory
from app.models.pricing import CorporatePricing
from app.models.user import Permission
from tests.helpers import FIRST_CONSIGNMENT, booking_payload


PINCODES = "/api/admin/pincodes"


def pincode_body(**overrides):
    body = {"pincode": "400001", "area": "Fort", "city": "Mumbai", "state": "Maharashtra"}
    body.update(overrides)
    return body


def coloader_body(**overrides):
    body = {
        "companyName": "Western Freight Carriers",
        "concernPerson": "Anil Shah",
        "email": "Ops@WesternFreight.in",
        "serviceModes": ["road", "train"],
        "mobileNumbers": ["9822012345", " "],
        "companyAddress": {
            "pincode": "400001",
            "state": "Maharashtra",
            "city": "Mumbai",
            "area": "Fort",
            "address": "14 Dock Road",
            "flatNo": "Unit 3",
            "gst": "27aapfu0939f1zv",
        },
    }
    body.update(overrides)
    return body


# ==================== PINCODES ====================

async def test_pincode_crud_and_resolve(client, office_user):
    headers = office_user["headers"]
    created = await client.post(PINCODES, json=pincode_body(), headers=headers)
    await client.post(PINCODES, json=pincode_body(area="Kalbadevi"), headers=headers)

    assert created.status_code == 201
    assert created.json()["district"] == "Mumbai"

    resolved = await client.get("/api/pincode/400001")
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["state"] == "Maharashtra"
    areas = body["cities"]["Mumbai"]["districts"]["Mumbai"]["areas"]
    assert [a["name"] for a in areas] == ["Fort", "Kalbadevi"]

    listed = await client.get(PINCODES, params={"search": "kalba"}, headers=headers)
    assert listed.json()["pagination"]["total"] == 1

    deleted = await client.delete(f"{PINCODES}/{created.json()['id']}", headers=headers)
    assert deleted.json()["success"] is True


async def test_duplicate_pincode_area_is_a_conflict(client, office_user):
    await client.post(PINCODES, json=pincode_body(), headers=office_user["headers"])
    duplicate = await client.post(PINCODES, json=pincode_body(area="FORT", city="mumbai"), headers=office_user["headers"])

    assert duplicate.status_code == 409
    assert duplicate.json()["kind"] == "conflict"


async def test_unknown_pincode_is_not_serviceable(client):
    missing = await client.get("/api/pincode/999999")
    malformed = await client.get("/api/pincode/4000")

    assert missing.status_code == 404
    assert missing.json()["message"] == "Pincode not serviceable"
    assert malformed.status_code == 400


async def test_bulk_order_flag(client, office_user):
    headers = office_user["headers"]
    ids = [
        (await client.post(PINCODES, json=pincode_body(area=area), headers=headers)).json()["id"]
        for area in ("Fort", "Colaba")
    ]

    response = await client.patch(f"{PINCODES}/bulk-order", json={"pincodeIds": ids, "bulkOrder": True}, headers=headers)

    assert response.json()["modifiedCount"] == 2


async def test_permission_is_required(client, office_user, medicine_user):
    no_permission = await client.get("/api/admin/coloaders", headers=office_user["headers"])
    medicine = await client.get(PINCODES, headers=medicine_user["headers"])

    assert no_permission.status_code == 403
    assert no_permission.json()["message"] == "Permission denied. Required: coloaderManagement"
    assert medicine.status_code == 403


# ==================== COLOADERS ====================

async def test_coloader_registration_and_approval(client, super_admin):
    headers = super_admin["headers"]
    created = await client.post("/api/admin/coloaders", json=coloader_body(), headers=headers)

    assert created.status_code == 201
    coloader = created.json()
    assert coloader["status"] == "pending"
    assert coloader["email"] == "ops@westernfreight.in"
    assert coloader["mobileNumbers"] == ["9822012345"]
    assert coloader["companyAddress"]["gst"] == "27AAPFU0939F1ZV"

    duplicate = await client.post("/api/admin/coloaders", json=coloader_body(), headers=headers)
    assert duplicate.status_code == 409

    url = f"/api/admin/coloaders/{coloader['id']}/status"
    missing_reason = await client.patch(url, json={"status": "rejected"}, headers=headers)
    assert missing_reason.status_code == 422

    approved = await client.patch(url, json={"status": "approved"}, headers=headers)
    assert approved.json()["status"] == "approved"
    assert approved.json()["isActive"] is True

    stats = await client.get("/api/admin/coloaders/stats", headers=headers)
    assert stats.json()["total"] == 1

    by_mode = await client.get("/api/admin/coloaders", params={"serviceMode": "train"}, headers=headers)
    assert by_mode.json()["total"] == 1
    by_other_mode = await client.get("/api/admin/coloaders", params={"serviceMode": "air"}, headers=headers)
    assert by_other_mode.json()["total"] == 0


async def test_partial_coloader_gstin_is_rejected(client, super_admin):
    body = coloader_body()
    body["companyAddress"]["gst"] = "27AAP"
    response = await client.post("/api/admin/coloaders", json=body, headers=super_admin["headers"])

    assert response.status_code == 422


async def test_assign_coloader_to_booking(client, super_admin, medicine_user, consignment_pool, sent_emails):
    booking = (await client.post("/api/bookings", json=booking_payload(), headers=medicine_user["headers"])).json()["booking"]
    coloader = (await client.post("/api/admin/coloaders", json=coloader_body(), headers=super_admin["headers"])).json()

    response = await client.put(
        f"/api/admin/bookings/{booking['id']}/coloader",
        json={"coloaderId": coloader["id"]},
        headers=super_admin["headers"],
    )

    assert response.status_code == 200
    assert response.json()["booking"]["coloaderId"] == coloader["id"]


# ==================== EMPLOYEES ====================

async def test_employee_codes_increase(client, super_admin):
    headers = super_admin["headers"]
    assert (await client.get("/api/admin/employees/next-id", headers=headers)).json()["nextId"] == "EMP0001"

    body = {
        "name": "Priya Nair",
        "email": "Priya@CourierOps.in",
        "phone": "9811122233",
        "designation": "Dispatcher",
        "panNo": "abcde1234f",
    }
    created = await client.post("/api/admin/employees", json=body, headers=headers)

    assert created.status_code == 201
    assert created.json()["employeeCode"] == "EMP0001"
    assert created.json()["email"] == "priya@courierops.in"
    assert (await client.get("/api/admin/employees/next-id", headers=headers)).json()["nextId"] == "EMP0002"

    duplicate = await client.post("/api/admin/employees", json=body, headers=headers)
    assert duplicate.status_code == 409


# ==================== PRICING ====================

async def test_customer_pricing_upsert_and_public_read(client, super_admin):
    empty = await client.get("/api/admin/customer-pricing/public")
    assert empty.status_code == 200

    matrix = {"local": {"upTo250g": 40, "upTo500g": 55}}
    saved = await client.put(
        "/api/admin/customer-pricing",
        json={"standardDox": matrix},
        headers=super_admin["headers"],
    )
    assert saved.status_code == 200

    public = await client.get("/api/admin/customer-pricing/public")
    assert public.json()["data"]["standardDox"] == matrix


async def test_negative_price_is_rejected(client, super_admin):
    response = await client.put(
        "/api/admin/customer-pricing",
        json={"standardDox": {"local": {"upTo250g": -5}}},
        headers=super_admin["headers"],
    )
    assert response.status_code == 422


async def test_corporate_pricing_client_approval(client, super_admin, sent_emails):
    headers = super_admin["headers"]
    created = await client.post(
        "/api/admin/corporate-pricing",
        json={"name": "Apollo Clinics 2026", "clientName": "Apollo Clinics", "doxPricing": {"local": 35}},
        headers=headers,
    )
    assert created.status_code == 201
    pricing_id = created.json()["data"]["id"]
    assert created.json()["data"]["status"] == "pending"

    sent = await client.post(
        f"/api/admin/corporate-pricing/{pricing_id}/send-approval-email",
        json={"email": "accounts@apolloclinics.in"},
        headers=headers,
    )
    assert sent.status_code == 200
    assert sent_emails[0]["to"] == "accounts@apolloclinics.in"

    async with async_session_factory() as session:
        result = await session.execute(select(CorporatePricing.approval_token))
        token = result.scalar_one()
    assert token in sent_emails[0]["html"]

    view = await client.get(f"/api/admin/public/pricing-approval/{token}")
    assert view.json()["name"] == "Apollo Clinics 2026"

    approved = await client.post(f"/api/admin/public/pricing-approval/{token}/approve")
    assert approved.json()["status"] == "approved"

    again = await client.post(f"/api/admin/public/pricing-approval/{token}/reject")
    assert again.status_code == 409
    assert again.json()["message"] == "Pricing is already approved"


async def test_invalid_approval_link(client):
    response = await client.get("/api/admin/public/pricing-approval/not-a-token")

    assert response.status_code == 404
    assert response.json()["message"] == "Invalid or expired approval link"


# ==================== CONSIGNMENT ====================

async def test_assign_range_and_usage(client, super_admin, medicine_user, sent_emails):
    headers = super_admin["headers"]
    body = {
        "medicineUserId": str(medicine_user["id"]),
        "startNumber": FIRST_CONSIGNMENT,
        "endNumber": FIRST_CONSIGNMENT + 4,
    }
    assigned = await client.post("/api/admin/consignment/assign-medicine-user", json=body, headers=headers)
    assert assigned.status_code == 201
    assert assigned.json()["assignment"]["totalNumbers"] == 5

    overlap = dict(body, startNumber=FIRST_CONSIGNMENT + 4, endNumber=FIRST_CONSIGNMENT + 8)
    conflict = await client.post("/api/admin/consignment/assign-medicine-user", json=overlap, headers=headers)
    assert conflict.status_code == 409

    too_low = dict(body, startNumber=100, endNumber=200)
    rejected = await client.post("/api/admin/consignment/assign-medicine-user", json=too_low, headers=headers)
    assert rejected.status_code == 400

    await client.post("/api/bookings", json=booking_payload(), headers=medicine_user["headers"])

    listing = await client.get("/api/admin/consignment/assignments", headers=headers)
    assert listing.json()["assignments"][0]["usedCount"] == 1
    assert listing.json()["assignments"][0]["availableCount"] == 4

    usage = await client.get(f"/api/admin/consignment/usage/medicine-user/{medicine_user['id']}", headers=headers)
    assert usage.json()["usage"][0]["consignmentNumber"] == FIRST_CONSIGNMENT
    assert usage.json()["summary"]["usedCount"] == 1


# ==================== USERS & BOOKINGS ====================

async def test_only_super_admin_creates_users(client, super_admin, office_user):
    body = {
        "email": "sorting@courierops.in",
        "password": "Sorting@123",
        "name": "Sorting Desk",
        "role": "office",
        "permissions": [Permission.BOOKING_MANAGEMENT.value],
    }
    denied = await client.post("/api/admin/users", json=body, headers=office_user["headers"])
    created = await client.post("/api/admin/users", json=body, headers=super_admin["headers"])

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["permissions"] == ["bookingManagement"]
    assert created.json()["loginRoute"] == "/office/login"


async def test_admin_booking_list_searches(client, super_admin, medicine_user, consignment_pool, sent_emails):
    await client.post("/api/bookings", json=booking_payload(), headers=medicine_user["headers"])

    found = await client.get("/api/admin/bookings", params={"search": "9876543210"}, headers=super_admin["headers"])
    missed = await client.get("/api/admin/bookings", params={"search": "9000000000"}, headers=super_admin["headers"])

    assert found.json()["pagination"]["total"] == 1
    assert missed.json()["pagination"]["total"] == 0
