import re
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema

_PHONE = re.compile(r"^[0-9]{10}$")
_AADHAR = re.compile(r"^[0-9]{12}$")
_PAN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


def _phone(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    v = v.strip()
    if not _PHONE.match(v):
        raise ValueError("Phone number must be exactly 10 digits")
    return v


def _aadhar(v: Optional[str]) -> Optional[str]:
    if not v:
        return None
    v = re.sub(r"\s", "", v)
    if not _AADHAR.match(v):
        raise ValueError("Aadhar number must be 12 digits")
    return v


def _pan(v: Optional[str]) -> Optional[str]:
    if not v:
        return None
    v = v.strip().upper()
    if not _PAN.match(v):
        raise ValueError("Invalid PAN number")
    return v


class EmployeeAddress(BaseCreateSchema):
    locality: str = Field(..., min_length=1)
    building_flat_no: str = Field(..., min_length=1)
    landmark: str = ""
    pincode: str
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    area: str = ""

    @field_validator("pincode")
    @classmethod
    def validate_pincode(cls, v: str) -> str:
        v = v.strip()
        if not (len(v) == 6 and v.isdigit()):
            raise ValueError("Pincode must be exactly 6 digits")
        return v


class EmployeeCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str
    alternative_phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    designation: str = Field(..., min_length=1, max_length=100)
    qualification: Optional[str] = Field(None, max_length=100)
    aadhar_no: Optional[str] = None
    pan_no: Optional[str] = None
    present_address: Optional[EmployeeAddress] = None
    permanent_address: Optional[EmployeeAddress] = None

    check_phone = field_validator("phone", "alternative_phone")(_phone)
    check_aadhar = field_validator("aadhar_no")(_aadhar)
    check_pan = field_validator("pan_no")(_pan)

    @field_validator("phone")
    @classmethod
    def phone_required(cls, v: Optional[str]) -> str:
        if not v:
            raise ValueError("Phone number is required")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class EmployeeUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    alternative_phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    designation: Optional[str] = Field(None, min_length=1, max_length=100)
    qualification: Optional[str] = Field(None, max_length=100)
    aadhar_no: Optional[str] = None
    pan_no: Optional[str] = None
    present_address: Optional[EmployeeAddress] = None
    permanent_address: Optional[EmployeeAddress] = None
    is_active: Optional[bool] = None

    check_phone = field_validator("phone", "alternative_phone")(_phone)
    check_aadhar = field_validator("aadhar_no")(_aadhar)
    check_pan = field_validator("pan_no")(_pan)


class EmployeeResponse(BaseResponseSchema):
    id: UUID
    employee_code: str
    name: str
    email: str
    phone: str
    alternative_phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    designation: str
    qualification: Optional[str] = None
    aadhar_no: Optional[str] = None
    pan_no: Optional[str] = None
    present_address: Optional[dict] = None
    permanent_address: Optional[dict] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EmployeeListResponse(BaseResponseSchema):
    success: bool = True
    employees: List[EmployeeResponse]
    total: int


class NextEmployeeIdResponse(BaseResponseSchema):
    success: bool = True
    next_id: str
