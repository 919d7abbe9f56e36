"""Coloader (partner carrier) schemas."""
import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator, model_validator

from app.core.gstin import format_gstin, gstin_error
from app.models.coloader import ColoaderStatus, ServiceMode
from app.schemas.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseUpdateSchema,
)

_MOBILE = re.compile(r"^[0-9]{10}$")
_PINCODE = re.compile(r"^[0-9]{6}$")


def _gstin(value: Optional[str]) -> str:
    formatted = format_gstin(value)
    error = gstin_error(formatted)
    if error:
        raise ValueError(error)
    return formatted


def _clean_mobiles(numbers: List[str]) -> List[str]:
    cleaned = [m.strip() for m in numbers if m and m.strip()]
    if not cleaned:
        raise ValueError("At least one mobile number is required")
    for m in cleaned:
        if not _MOBILE.match(m):
            raise ValueError("Mobile number must be exactly 10 digits")
    return cleaned


class VehicleDetail(BaseCreateSchema):
    vehicle_name: str = Field("", max_length=100)
    vehicle_number: str = Field("", max_length=20)
    driver_name: str = Field("", max_length=100)
    driver_number: str = Field("", max_length=20)

    @field_validator("vehicle_number")
    @classmethod
    def upper_vehicle_number(cls, v: str) -> str:
        return v.strip().upper()


class ColoaderAddress(BaseCreateSchema):
    pincode: str
    state: str = Field(..., min_length=1, max_length=50)
    city: str = Field(..., min_length=1, max_length=50)
    area: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=200)
    flat_no: str = Field(..., min_length=1, max_length=100)
    landmark: str = Field("", max_length=100)
    gst: str = ""

    @field_validator("pincode")
    @classmethod
    def validate_pincode(cls, v: str) -> str:
        v = v.strip()
        if not _PINCODE.match(v):
            raise ValueError("Pincode must be exactly 6 digits")
        return v

    @field_validator("gst", mode="before")
    @classmethod
    def validate_gst(cls, v: Optional[str]) -> str:
        return _gstin(v)


class ColoaderLocation(ColoaderAddress):
    concern_person: str = Field(..., min_length=1, max_length=100)
    mobile: str
    email: EmailStr
    vehicle_details: List[VehicleDetail] = []

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        v = v.strip()
        if not _MOBILE.match(v):
            raise ValueError("Mobile number must be exactly 10 digits")
        return v


class ColoaderBase(BaseCreateSchema):
    company_name: str = Field(..., min_length=1, max_length=200)
    concern_person: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    website: Optional[str] = Field(None, max_length=200)
    service_modes: List[ServiceMode] = Field(..., min_length=1)
    mobile_numbers: List[str] = Field(..., min_length=1)
    company_address: ColoaderAddress
    from_locations: List[ColoaderLocation] = []
    to_locations: List[ColoaderLocation] = []
    vehicle_details: List[VehicleDetail] = []
    notes: Optional[str] = None

    @field_validator("mobile_numbers")
    @classmethod
    def validate_mobiles(cls, v: List[str]) -> List[str]:
        return _clean_mobiles(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ColoaderCreate(ColoaderBase):
    pass


class ColoaderUpdate(BaseUpdateSchema):
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    concern_person: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=200)
    service_modes: Optional[List[ServiceMode]] = None
    mobile_numbers: Optional[List[str]] = None
    company_address: Optional[ColoaderAddress] = None
    from_locations: Optional[List[ColoaderLocation]] = None
    to_locations: Optional[List[ColoaderLocation]] = None
    vehicle_details: Optional[List[VehicleDetail]] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("mobile_numbers")
    @classmethod
    def validate_mobiles(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return _clean_mobiles(v)


class ColoaderStatusUpdate(BaseUpdateSchema):
    status: ColoaderStatus
    rejection_reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def reason_for_rejection(self):
        if self.status == ColoaderStatus.REJECTED and not (self.rejection_reason or "").strip():
            raise ValueError("Rejection reason is required")
        return self


class ColoaderResponse(BaseResponseSchema):
    id: UUID
    company_name: str
    concern_person: str
    email: str
    website: Optional[str] = None
    service_modes: List[str]
    mobile_numbers: List[str]
    company_address: dict
    from_locations: List[dict]
    to_locations: List[dict]
    vehicle_details: List[dict]
    state: str
    city: str
    status: str
    is_active: bool
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ColoaderListResponse(BaseResponseSchema):
    success: bool = True
    coloaders: List[ColoaderResponse]
    total: int


class ColoaderStats(BaseResponseSchema):
    success: bool = True
    total: int
    active: int
    by_status: dict
    by_service_mode: dict
