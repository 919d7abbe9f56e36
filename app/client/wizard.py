"""
Booking wizard.

Six linear steps: Origin, Destination, Shipment, Invoice, Billing, Preview.
Leaving a step runs its guard from app.services.booking_rules; a failing guard
sets ``step_error`` and the wizard stays where it is. No network call happens
here: the address and pincode helpers feed results in, and BookingSubmitter
takes the finished payload.
"""
import copy
import uuid
from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional

from app.client.pincode_lookup import PincodeResult
from app.core.gstin import format_gstin
from app.services.booking_rules import (
    EWAYBILL_THRESHOLD,
    ewaybill_required,
    is_valid_pincode,
    normalize_ewaybill,
    validate_address_step,
    validate_billing_step,
    validate_invoice_step,
    validate_shipment_step,
)
from app.services.pricing_calculator import (
    compute_charges,
    format_amount,
    is_gst_applicable,
    per_entry_volumetric_weights,
)


class Step(IntEnum):
    ORIGIN = 0
    DESTINATION = 1
    SHIPMENT = 2
    INVOICE = 3
    BILLING = 4
    PREVIEW = 5


STEP_LABELS = {
    Step.ORIGIN: "Origin",
    Step.DESTINATION: "Destination",
    Step.SHIPMENT: "Shipment",
    Step.INVOICE: "Invoice",
    Step.BILLING: "Billing",
    Step.PREVIEW: "Preview",
}

ROLES = ("origin", "destination")

# Charge fields the user types; the rest are derived
EDITABLE_CHARGE_FIELDS = (
    "awbCharge",
    "localCollection",
    "doorDelivery",
    "loadingUnloading",
    "demurrageCharge",
    "ddaCharge",
    "hamaliCharge",
    "packingCharge",
    "otherCharge",
    "total",
    "fuelCharge",
    "sgstAmount",
    "cgstAmount",
    "igstAmount",
)

DERIVED_SHIPMENT_FIELDS = ("volumetricWeight", "chargeableWeight")
DERIVED_CHARGE_FIELDS = ("freightCharge", "gstAmount", "grandTotal")


def empty_address() -> dict[str, Any]:
    return {
        "name": "",
        "mobileNumber": "",
        "email": "",
        "companyName": "",
        "flatBuilding": "",
        "locality": "",
        "landmark": "",
        "pincode": "",
        "area": "",
        "city": "",
        "district": "",
        "state": "",
        "gstNumber": "",
        "addressType": "Home",
    }


def empty_dimension() -> dict[str, Any]:
    return {"length": "", "breadth": "", "height": "", "unit": "cm"}


def empty_charges() -> dict[str, Any]:
    charges: dict[str, Any] = {key: "0.00" for key in EDITABLE_CHARGE_FIELDS + DERIVED_CHARGE_FIELDS}
    charges["fuelChargeType"] = "percentage"
    return charges


class BookingWizard:
    """Form state of one booking, from the first digit typed to submission."""

    def __init__(self, ewaybill_threshold: Decimal = EWAYBILL_THRESHOLD):
        self.ewaybill_threshold = ewaybill_threshold
        self.step = Step.ORIGIN
        self.step_error: Optional[str] = None
        # One token per booking form; resubmits of this form replay the first booking
        self.idempotency_key = uuid.uuid4().hex

        self.origin = empty_address()
        self.destination = empty_address()
        self.address_entry = {role: {"manual": False, "confirmed": False} for role in ROLES}
        self.areas: dict[str, list[str]] = {role: [] for role in ROLES}

        self.shipment: dict[str, Any] = {
            "natureOfConsignment": "NON-DOX",
            "services": "Standard",
            "mode": "Surface",
            "insurance": "Without insurance",
            "riskCoverage": "Owner",
            "dimensions": [empty_dimension()],
            "actualWeight": "",
            "perKgWeight": "",
            "volumetricWeight": 0.0,
            "chargeableWeight": 0.0,
        }
        self.package: dict[str, Any] = {
            "totalPackages": "",
            "materials": "",
            "contentDescription": "",
        }
        self.invoice: dict[str, Any] = {
            "invoiceNumber": "",
            "invoiceValue": "",
            "eWaybillNumber": "",
            "acceptTerms": False,
        }
        self.billing: dict[str, Any] = {"gst": "No", "partyType": "sender", "billType": "normal"}
        self.charges = empty_charges()
        self.payment: dict[str, Any] = {"mode": "", "deliveryType": ""}

        # (filename, content, content_type) tuples, uploaded on submit
        self.package_images: list[tuple[str, bytes, str]] = []
        self.invoice_images: list[tuple[str, bytes, str]] = []

    # ==================== NAVIGATION ====================

    @property
    def can_go_next(self) -> bool:
        return self.step != Step.PREVIEW

    @property
    def can_go_back(self) -> bool:
        return self.step != Step.ORIGIN

    @property
    def charges_visible(self) -> bool:
        """Charges are edited only when GST applies; everyone sees them on Preview."""
        return is_gst_applicable(self.billing.get("gst")) or self.step == Step.PREVIEW

    def validate_step(self, step: Optional[Step] = None) -> Optional[str]:
        """Guard of a step: None when it may be left, else the message to show."""
        step = self.step if step is None else step
        if step in (Step.ORIGIN, Step.DESTINATION):
            role = "origin" if step == Step.ORIGIN else "destination"
            label = STEP_LABELS[step]
            address = self.address(role)
            entry = self.address_entry[role]
            message = validate_address_step(address, label, entry["manual"], entry["confirmed"])
            if message is None and entry["manual"] and not is_valid_pincode(address.get("pincode")):
                message = f"{label} pincode must be exactly 6 digits"
            return message
        if step == Step.SHIPMENT:
            return validate_shipment_step(self.shipment, self.package)
        if step == Step.INVOICE:
            return validate_invoice_step(self.invoice, self.ewaybill_threshold)
        if step == Step.BILLING:
            return validate_billing_step(self.billing)
        return None

    def next(self) -> bool:
        """Advance one step if the current step's guard passes."""
        if not self.can_go_next:
            return False
        message = self.validate_step()
        self.step_error = message
        if message:
            return False
        self.step = Step(self.step + 1)
        if self.step == Step.PREVIEW:
            self.recompute()
        return True

    def back(self) -> bool:
        if not self.can_go_back:
            return False
        self.step_error = None
        self.step = Step(self.step - 1)
        return True

    def go_to(self, step: Step) -> bool:
        """Jump back to an earlier step, e.g. "Back to edit" from Preview."""
        if step > self.step:
            return False
        self.step_error = None
        self.step = step
        return True

    def first_failing_step(self) -> Optional[tuple[Step, str]]:
        for step in Step:
            message = self.validate_step(step)
            if message:
                return step, message
        return None

    def is_ready(self) -> bool:
        """Every guard passes."""
        return self.first_failing_step() is None

    # ==================== ADDRESSES ====================

    def address(self, role: str) -> dict[str, Any]:
        if role == "origin":
            return self.origin
        if role == "destination":
            return self.destination
        raise ValueError(f"Unknown address role: {role}")

    def set_address_field(self, role: str, key: str, value: Any) -> None:
        address = self.address(role)
        if key not in address:
            raise KeyError(key)
        if key == "gstNumber":
            value = format_gstin(value)
        elif key == "pincode":
            value = "".join(ch for ch in str(value or "") if ch.isdigit())[:6]
            if value != address["pincode"]:
                self._clear_pincode_fields(role)
        address[key] = value

    def use_manual_entry(self, role: str, phone: str) -> None:
        """Show the empty address form, keeping the phone number already typed."""
        address = self.address(role)
        address.clear()
        address.update(empty_address())
        address["mobileNumber"] = phone
        self.areas[role] = []
        self.address_entry[role] = {"manual": True, "confirmed": False}

    def confirm_address(self, role: str, selected: dict[str, Any]) -> None:
        """Take over a previously used address the user confirmed."""
        address = self.address(role)
        address.clear()
        address.update(empty_address())
        address.update({k: v for k, v in selected.items() if k in address and v is not None})
        address["gstNumber"] = format_gstin(address.get("gstNumber"))
        self.address_entry[role] = {"manual": False, "confirmed": True}

    def reset_address(self, role: str) -> None:
        """Phone number changed: forget the address and how it was chosen."""
        address = self.address(role)
        address.clear()
        address.update(empty_address())
        self.areas[role] = []
        self.address_entry[role] = {"manual": False, "confirmed": False}

    def apply_pincode(self, role: str, result: PincodeResult) -> None:
        """Fill state, city and district from a resolved pincode."""
        address = self.address(role)
        if result.pincode != address.get("pincode"):
            return
        address["state"] = result.state
        address["city"] = result.city
        address["district"] = result.district
        address["area"] = ""
        self.areas[role] = list(result.areas)

    def select_area(self, role: str, area: str) -> None:
        if area not in self.areas[role]:
            raise ValueError(f"{area} is not a serviceable area for this pincode")
        self.address(role)["area"] = area

    def _clear_pincode_fields(self, role: str) -> None:
        address = self.address(role)
        for key in ("area", "city", "district", "state"):
            address[key] = ""
        self.areas[role] = []

    # ==================== SHIPMENT ====================

    def set_shipment_field(self, key: str, value: Any) -> None:
        if key in DERIVED_SHIPMENT_FIELDS or key == "dimensions":
            raise KeyError(f"{key} cannot be set directly")
        self.shipment[key] = value
        if key in ("actualWeight", "perKgWeight"):
            self.recompute()

    def set_dimension(self, index: int, key: str, value: Any) -> None:
        dimension = self.shipment["dimensions"][index]
        if key not in dimension:
            raise KeyError(key)
        dimension[key] = value
        self.recompute()

    def add_dimension(self) -> None:
        self.shipment["dimensions"].append(empty_dimension())

    def remove_dimension(self, index: int) -> None:
        dimensions = self.shipment["dimensions"]
        if len(dimensions) > 1:
            del dimensions[index]
            self.recompute()

    def set_package_field(self, key: str, value: Any) -> None:
        if key not in self.package:
            raise KeyError(key)
        self.package[key] = value

    @property
    def dimension_weights(self) -> list[Decimal]:
        """Volumetric weight of each dimension row, for display."""
        return per_entry_volumetric_weights(self.shipment["dimensions"])

    # ==================== INVOICE ====================

    def set_invoice_field(self, key: str, value: Any) -> None:
        if key not in self.invoice:
            raise KeyError(key)
        if key == "eWaybillNumber":
            value = normalize_ewaybill(value)
        self.invoice[key] = value

    @property
    def ewaybill_required(self) -> bool:
        return ewaybill_required(self.invoice.get("invoiceValue"), self.ewaybill_threshold)

    def stage_images(self, kind: str, files: list[tuple[str, bytes, str]]) -> None:
        if kind == "package":
            self.package_images.extend(files)
        elif kind == "invoice":
            self.invoice_images.extend(files)
        else:
            raise ValueError(f"Unknown image kind: {kind}")

    @property
    def has_staged_images(self) -> bool:
        return bool(self.package_images or self.invoice_images)

    # ==================== BILLING & CHARGES ====================

    def set_billing_field(self, key: str, value: Any) -> None:
        if key not in self.billing:
            raise KeyError(key)
        self.billing[key] = value
        if key == "gst":
            self.recompute()

    def set_charge(self, key: str, value: Any) -> None:
        """Store the charge as typed; ``blur`` canonicalises it."""
        if key == "fuelChargeType":
            if value not in ("percentage", "fixed"):
                raise ValueError("fuelChargeType must be percentage or fixed")
        elif key not in EDITABLE_CHARGE_FIELDS:
            raise KeyError(f"{key} cannot be set directly")
        self.charges[key] = value

    def set_payment_field(self, key: str, value: Any) -> None:
        if key not in self.payment:
            raise KeyError(key)
        self.payment[key] = value

    def blur(self, key: str) -> None:
        """Field lost focus: money fields take their 2-decimal form ("12." becomes "12.00")."""
        if key in EDITABLE_CHARGE_FIELDS:
            self.charges[key] = format_amount(self.charges[key])

    def recompute(self) -> None:
        """Rederive weights and amounts from dimensions, weights, rate and the GST flag."""
        breakdown = compute_charges(
            self.shipment["dimensions"],
            self.shipment.get("actualWeight"),
            self.shipment.get("perKgWeight"),
            is_gst_applicable(self.billing.get("gst")),
        )
        self.shipment.update(breakdown.weights())
        self.charges.update(breakdown.amounts())

    # ==================== PAYLOAD ====================

    def build_payload(self, uploaded: Optional[dict[str, list[dict[str, Any]]]] = None) -> dict[str, Any]:
        """
        Booking request body.

        Args:
            uploaded: response data of the image upload, when images were staged
        """
        self.recompute()
        uploaded = uploaded or {}

        package = copy.deepcopy(self.package)
        package["packageImages"] = list(uploaded.get("packageImages") or [])
        invoice = copy.deepcopy(self.invoice)
        invoice["invoiceImages"] = list(uploaded.get("invoiceImages") or [])

        charges = {
            key: (value if key == "fuelChargeType" else format_amount(value))
            for key, value in self.charges.items()
        }

        return {
            "origin": copy.deepcopy(self.origin),
            "destination": copy.deepcopy(self.destination),
            "shipment": copy.deepcopy(self.shipment),
            "package": package,
            "invoice": invoice,
            "billing": dict(self.billing),
            "charges": charges,
            "payment": dict(self.payment),
        }
