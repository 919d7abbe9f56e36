"""Pydantic schemas for medicine bookings."""
from datetime import datetime
from typing import Annotated, Any, Literal, Optional
from uuid import UUID

from pydantic import BeforeValidator, Field

from app.models.booking import BookingStatus
from app.schemas.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    FormNumber,
    Pagination,
    blank_to_none,
)


def _choice(*values: str):
    return Annotated[Optional[Literal[values]], BeforeValidator(blank_to_none)]


YesNo = _choice("Yes", "No")


# ==================== BOOKING SECTIONS ====================

class AddressSchema(BaseCreateSchema):
    """Sender (origin) or recipient (destination) address."""
    name: str = ""
    mobile_number: str = ""
    email: str = ""
    company_name: str = ""
    flat_building: str = ""
    locality: str = ""
    landmark: str = ""
    pincode: str = ""
    area: str = ""
    city: str = ""
    district: str = ""
    state: str = ""
    gst_number: str = ""
    address_type: Literal["Home", "Office"] = "Home"


class DimensionSchema(BaseCreateSchema):
    length: FormNumber = None
    breadth: FormNumber = None
    height: FormNumber = None
    unit: Literal["cm", "mm", "m"] = "cm"


class ShipmentSchema(BaseCreateSchema):
    nature_of_consignment: _choice("NON-DOX", "DOX") = "NON-DOX"
    services: _choice("Standard", "Express", "Same Day") = "Standard"
    mode: _choice("Air", "Surface", "Cargo") = "Surface"
    insurance: Optional[str] = "Without insurance"
    risk_coverage: _choice("Owner", "Carrier") = "Owner"
    dimensions: list[DimensionSchema] = Field(default_factory=lambda: [DimensionSchema()])
    actual_weight: FormNumber = None
    per_kg_weight: FormNumber = None
    # Recomputed on the server; whatever the client sends is replaced
    volumetric_weight: FormNumber = None
    chargeable_weight: FormNumber = None


class ImageRef(BaseCreateSchema):
    """Stored image as returned by the upload endpoint."""
    url: str
    file_name: str = ""
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


class PackageSchema(BaseCreateSchema):
    total_packages: Annotated[Optional[int], BeforeValidator(blank_to_none)] = None
    materials: str = ""
    package_images: list[ImageRef] = Field(default_factory=list)
    content_description: str = ""


class InvoiceSchema(BaseCreateSchema):
    invoice_number: str = ""
    invoice_value: FormNumber = None
    invoice_images: list[ImageRef] = Field(default_factory=list)
    e_waybill_number: str = Field(default="", alias="eWaybillNumber")
    accept_terms: bool = False


class BillingSchema(BaseCreateSchema):
    gst: YesNo = "No"
    party_type: _choice("sender", "recipient") = "sender"
    bill_type: _choice("normal", "rcm") = "normal"


class ChargesSchema(BaseCreateSchema):
    """All amounts are decimal strings with two places."""
    freight_charge: str = "0.00"
    awb_charge: str = "0.00"
    local_collection: str = "0.00"
    door_delivery: str = "0.00"
    loading_unloading: str = "0.00"
    demurrage_charge: str = "0.00"
    dda_charge: str = "0.00"
    hamali_charge: str = "0.00"
    packing_charge: str = "0.00"
    other_charge: str = "0.00"
    total: str = "0.00"
    fuel_charge: str = "0.00"
    fuel_charge_type: Literal["percentage", "fixed"] = "percentage"
    gst_amount: str = "0.00"
    sgst_amount: str = "0.00"
    cgst_amount: str = "0.00"
    igst_amount: str = "0.00"
    grand_total: str = "0.00"


class PaymentSchema(BaseCreateSchema):
    mode: str = ""
    delivery_type: str = ""


# ==================== REQUESTS ====================

class BookingCreate(BaseCreateSchema):
    """Body of POST /bookings."""
    medicine_user_id: Optional[UUID] = None
    origin: AddressSchema
    destination: AddressSchema
    shipment: ShipmentSchema
    package: PackageSchema
    invoice: InvoiceSchema
    billing: BillingSchema
    charges: ChargesSchema = Field(default_factory=ChargesSchema)
    payment: PaymentSchema = Field(default_factory=PaymentSchema)


class BookingStatusUpdate(BaseCreateSchema):
    status: BookingStatus


class ColoaderAssignRequest(BaseCreateSchema):
    coloader_id: UUID


# ==================== RESPONSES ====================

class BookingSummary(BaseResponseSchema):
    id: UUID
    booking_reference: str
    consignment_number: int
    status: str
    created_at: datetime


class BookingResponse(BaseResponseSchema):
    id: UUID
    medicine_user_id: UUID
    booking_reference: str
    consignment_number: int
    status: str
    origin: dict[str, Any]
    destination: dict[str, Any]
    shipment: dict[str, Any]
    package: dict[str, Any]
    invoice: dict[str, Any]
    billing: dict[str, Any]
    charges: dict[str, Any]
    payment: dict[str, Any]
    coloader_id: Optional[UUID] = None
    status_changed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BookingCreateResponse(BaseResponseSchema):
    success: bool = True
    message: str
    booking: BookingSummary
    replayed: bool = False


class BookingDetailResponse(BaseResponseSchema):
    success: bool = True
    booking: BookingResponse


class BookingStatusResponse(BaseResponseSchema):
    success: bool = True
    message: str
    booking: BookingResponse


class BookingListResponse(BaseResponseSchema):
    success: bool = True
    bookings: list[BookingResponse]
    pagination: Pagination


class LookupAddress(BaseResponseSchema):
    """A previously used address, offered for auto-fill."""
    id: str
    role: Literal["origin", "destination"]
    name: str = ""
    mobile_number: str = ""
    email: str = ""
    company_name: str = ""
    flat_building: str = ""
    locality: str = ""
    landmark: str = ""
    pincode: str = ""
    area: str = ""
    city: str = ""
    district: str = ""
    state: str = ""
    gst_number: str = ""
    address_type: str = "Home"


class AddressLookupResponse(BaseResponseSchema):
    success: bool = True
    count: int
    addresses: list[LookupAddress]


# ==================== UPLOADS ====================

class UploadedImage(BaseResponseSchema):
    url: str
    file_name: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


class UploadedImages(BaseResponseSchema):
    package_images: list[UploadedImage] = Field(default_factory=list)
    invoice_images: list[UploadedImage] = Field(default_factory=list)


class UploadImagesResponse(BaseResponseSchema):
    success: bool = True
    message: str
    data: UploadedImages
