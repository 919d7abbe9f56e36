"""Plain builders shared by the test modules."""
import io
from typing import Any, Optional

import httpx
from PIL import Image

from app.client.api_client import BookingApiClient
from app.client.config import ClientSettings
from app.client.pincode_lookup import PincodeResult
from app.client.session import SessionContext
from app.client.wizard import BookingWizard, Step
from app.database import async_session_factory
from app.models.user import UserRole
from app.services.auth_service import AuthService
from app.services.consignment_service import ConsignmentService


FIRST_CONSIGNMENT = 871026572


async def create_user(
    email: str,
    role: UserRole,
    permissions: Optional[list[str]] = None,
    is_super_admin: bool = False,
    password: str = "Secret@123",
) -> dict[str, Any]:
    """Create a user in its own committed session and return id, token and headers."""
    async with async_session_factory() as session:
        service = AuthService(session)
        user = await service.create_user(
            email=email,
            password=password,
            name=email.split("@")[0].title(),
            role=role,
            permissions=permissions,
            is_super_admin=is_super_admin,
        )
        await session.commit()
        token, _ = service.create_token(user)
        return {
            "id": user.id,
            "email": user.email,
            "password": password,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }


async def assign_pool(user_id, start: int = FIRST_CONSIGNMENT, end: int = FIRST_CONSIGNMENT + 9):
    async with async_session_factory() as session:
        assignment = await ConsignmentService(session).assign_range(user_id, start, end)
        await session.commit()
        return assignment.id


def make_image(fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def address(name: str, mobile: str, pincode: str = "400001", **overrides) -> dict[str, Any]:
    data = {
        "name": name,
        "mobileNumber": mobile,
        "email": "",
        "companyName": "",
        "flatBuilding": "12 Marine Lines",
        "locality": "Fort",
        "landmark": "",
        "pincode": pincode,
        "area": "Fort",
        "city": "Mumbai",
        "district": "Mumbai",
        "state": "Maharashtra",
        "gstNumber": "",
        "addressType": "Office",
    }
    data.update(overrides)
    return data


def booking_payload(**overrides) -> dict[str, Any]:
    """A booking that passes every step rule: 2kg at 50/kg with GST, 118.00 in total."""
    payload = {
        "origin": address("Sunrise Pharma", "9876543210"),
        "destination": address(
            "City Hospital", "9123456780", pincode="110001",
            locality="Connaught Place", area="Janpath", city="New Delhi",
            district="New Delhi", state="Delhi",
        ),
        "shipment": {
            "natureOfConsignment": "NON-DOX",
            "services": "Standard",
            "mode": "Surface",
            "insurance": "Without insurance",
            "riskCoverage": "Owner",
            "dimensions": [{"length": "10", "breadth": "10", "height": "10", "unit": "cm"}],
            "actualWeight": "2",
            "perKgWeight": "50",
        },
        "package": {
            "totalPackages": "1",
            "materials": "Medicines",
            "packageImages": [],
            "contentDescription": "Tablets",
        },
        "invoice": {
            "invoiceNumber": "INV-1001",
            "invoiceValue": "1200",
            "invoiceImages": [],
            "eWaybillNumber": "",
            "acceptTerms": True,
        },
        "billing": {"gst": "Yes", "partyType": "sender", "billType": "normal"},
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(payload.get(key), dict):
            payload[key] = {**payload[key], **value}
        else:
            payload[key] = value
    return payload


def ready_wizard():
    """A BookingWizard with every step filled in, sitting on Preview."""
    wizard = BookingWizard()
    wizard.use_manual_entry("origin", "9876543210")
    wizard.set_address_field("origin", "name", "Sunrise Pharma")
    wizard.set_address_field("origin", "locality", "Marine Lines")
    wizard.set_address_field("origin", "pincode", "400001")
    wizard.apply_pincode(
        "origin",
        PincodeResult(pincode="400001", state="Maharashtra", city="Mumbai", district="Mumbai", areas=["Fort"]),
    )
    wizard.select_area("origin", "Fort")
    wizard.confirm_address("destination", address("City Hospital", "9123456780", pincode="110001"))
    wizard.set_shipment_field("actualWeight", "2")
    wizard.set_shipment_field("perKgWeight", "50")
    for key in ("length", "breadth", "height"):
        wizard.set_dimension(0, key, "10")
    wizard.set_package_field("totalPackages", "1")
    wizard.set_package_field("materials", "Medicines")
    wizard.set_package_field("contentDescription", "Tablets")
    wizard.set_invoice_field("invoiceNumber", "INV-1001")
    wizard.set_invoice_field("invoiceValue", "1200")
    while wizard.step < Step.PREVIEW:
        assert wizard.next(), wizard.step_error
    return wizard


def mock_api(handler, token: Optional[str] = "medicine-token"):
    """BookingApiClient whose requests are answered by ``handler``."""
    session = SessionContext("/medicine/login", token=token)
    settings = ClientSettings(BASE_URL="http://booking.test/api", LOOKUP_DEBOUNCE_MS=0, SUCCESS_BANNER_MS=20)
    return BookingApiClient(session, settings=settings, transport=httpx.MockTransport(handler))
