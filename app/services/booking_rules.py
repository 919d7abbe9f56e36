"""
Booking step rules.

Each booking form step has a guard: it passes, or it returns the message shown to
the user. The wizard runs the guard for the step being left; the booking service
runs all of them again on submission. Sections are plain dicts with the camelCase
keys the booking API uses.
"""
import re
from decimal import Decimal
from typing import Any, Mapping, Optional

from app.core.gstin import gstin_error
from app.services.pricing_calculator import to_decimal


EWAYBILL_THRESHOLD = Decimal("50000")
EWAYBILL_LENGTH = 12

MOBILE_PATTERN = re.compile(r"^[0-9]{10}$")
PINCODE_PATTERN = re.compile(r"^[0-9]{6}$")

ADDRESS_REQUIRED_FIELDS = ("name", "locality", "pincode", "area", "city", "district", "state")

MSG_MOBILE = "Please enter a valid 10-digit mobile number"
MSG_CONFIRM_ADDRESS = "Please select and confirm a delivery address"
MSG_EWAYBILL_REQUIRED = "E-Waybill Number is required for invoice values above ₹50,000"
MSG_EWAYBILL_LENGTH = "E-Waybill Number must be 12 digits"


def _text(section: Mapping[str, Any], key: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    return str(value).strip()


def is_valid_mobile(value: Optional[str]) -> bool:
    return bool(value) and bool(MOBILE_PATTERN.match(value))


def is_valid_pincode(value: Optional[str]) -> bool:
    return bool(value) and bool(PINCODE_PATTERN.match(value))


def normalize_ewaybill(value: Optional[str]) -> str:
    """Digits only, at most 12."""
    return re.sub(r"\D", "", value or "")[:EWAYBILL_LENGTH]


def is_address_form_complete(address: Mapping[str, Any]) -> bool:
    """Manual address form: every required field filled and GSTIN empty or complete."""
    if not is_valid_mobile(_text(address, "mobileNumber")):
        return False
    if any(not _text(address, field) for field in ADDRESS_REQUIRED_FIELDS):
        return False
    return gstin_error(_text(address, "gstNumber")) is None


def validate_address_step(
    address: Mapping[str, Any],
    label: str,
    manual_entry: bool,
    confirmed: bool,
) -> Optional[str]:
    """
    Guard for the Origin and Destination steps.

    Args:
        address: the address section
        label: "Origin" or "Destination", used in the message
        manual_entry: True when the address is typed in by hand rather than
            picked from previously used addresses
        confirmed: whether a picked address was confirmed

    Returns:
        Error message, or None when the step is satisfied
    """
    if not is_valid_mobile(_text(address, "mobileNumber")):
        return MSG_MOBILE
    if manual_entry:
        if not is_address_form_complete(address):
            return f"Please fill all required fields in the {label} Details form"
        return None
    if not confirmed:
        return MSG_CONFIRM_ADDRESS
    return None


def validate_shipment_step(shipment: Mapping[str, Any], package: Mapping[str, Any]) -> Optional[str]:
    if not _text(shipment, "natureOfConsignment"):
        return "Please select Nature of Consignment"
    if not _text(shipment, "services"):
        return "Please select Services"
    if not _text(shipment, "mode"):
        return "Please select Mode"
    if not _text(shipment, "insurance"):
        return "Please select Insurance"
    if not _text(shipment, "riskCoverage"):
        return "Please select Risk Coverage"
    total_packages = _text(package, "totalPackages")
    if not total_packages or to_decimal(total_packages) <= 0:
        return "Please enter Total Packages"
    if not _text(package, "materials"):
        return "Please enter Materials"
    if not _text(package, "contentDescription"):
        return "Please enter Content Description"
    return None


def ewaybill_required(invoice_value: Any, threshold: Decimal = EWAYBILL_THRESHOLD) -> bool:
    return to_decimal(invoice_value) > threshold


def validate_invoice_step(
    invoice: Mapping[str, Any],
    threshold: Decimal = EWAYBILL_THRESHOLD,
) -> Optional[str]:
    if not _text(invoice, "invoiceNumber"):
        return "Please enter Invoice Number"
    if not _text(invoice, "invoiceValue"):
        return "Please enter Invoice Value"
    ewaybill = _text(invoice, "eWaybillNumber")
    if ewaybill_required(invoice.get("invoiceValue"), threshold):
        if not ewaybill:
            return MSG_EWAYBILL_REQUIRED
        if len(ewaybill) != EWAYBILL_LENGTH or not ewaybill.isdigit():
            return MSG_EWAYBILL_LENGTH
    return None


def validate_billing_step(billing: Mapping[str, Any]) -> Optional[str]:
    if not _text(billing, "gst"):
        return "Please select GST option"
    if not _text(billing, "partyType"):
        return "Please select Party Type"
    if _text(billing, "gst") == "Yes" and not _text(billing, "billType"):
        return "Please select Bill Type"
    return None


def validate_booking(
    payload: Mapping[str, Any],
    ewaybill_threshold: Decimal = EWAYBILL_THRESHOLD,
) -> list[str]:
    """
    Run every step guard over a complete booking payload.

    Addresses are checked as complete forms here; the select/confirm distinction
    only exists in the wizard. Returns all failures, in step order.
    """
    errors: list[str] = []

    for key, label in (("origin", "Origin"), ("destination", "Destination")):
        address = payload.get(key) or {}
        message = validate_address_step(address, label, manual_entry=True, confirmed=True)
        if message:
            errors.append(message)
            continue
        if not is_valid_pincode(_text(address, "pincode")):
            errors.append(f"{label} pincode must be exactly 6 digits")

    checks = (
        validate_shipment_step(payload.get("shipment") or {}, payload.get("package") or {}),
        validate_invoice_step(payload.get("invoice") or {}, ewaybill_threshold),
        validate_billing_step(payload.get("billing") or {}),
    )
    errors.extend(message for message in checks if message)
    return errors
