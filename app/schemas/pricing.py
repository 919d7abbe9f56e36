"""
Rate card schemas.

Rate matrices are nested documents (mode -> weight slab -> route -> price), e.g.
``{"air": {"01gm-250gm": {"assamToNe": 40, "assamToRoi": 55}}}``. Their shape
varies by product, so they are accepted as free-form dicts; every leaf must be a
non-negative number.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.models.pricing import CorporatePricingStatus
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


def check_price_tree(value: Any, path: str = "") -> Any:
    """Reject negative or non-numeric leaves anywhere in a rate matrix."""
    if isinstance(value, dict):
        return {k: check_price_tree(v, f"{path}.{k}" if path else str(k)) for k, v in value.items()}
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError(f"{path or 'price'}: price must be a number")
    if value < 0:
        raise ValueError(f"{path or 'price'}: Price cannot be negative")
    return value


def _check_prices(value: dict) -> dict:
    return check_price_tree(value)


PRICE_MATRIX_FIELDS = ("standard_dox", "standard_non_dox", "priority_pricing", "reverse_pricing")
CORPORATE_MATRIX_FIELDS = (
    "dox_pricing",
    "non_dox_surface_pricing",
    "non_dox_air_pricing",
    "priority_pricing",
    "reverse_pricing",
)


class CustomerPricingUpdate(BaseUpdateSchema):
    standard_dox: dict = {}
    standard_non_dox: dict = {}
    priority_pricing: dict = {}
    reverse_pricing: dict = {}
    notes: Optional[str] = Field(None, max_length=1000)

    check_prices = field_validator(*PRICE_MATRIX_FIELDS)(_check_prices)


class CustomerPricingResponse(BaseResponseSchema):
    id: Optional[UUID] = None
    standard_dox: dict = {}
    standard_non_dox: dict = {}
    priority_pricing: dict = {}
    reverse_pricing: dict = {}
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None


class CustomerPricingEnvelope(BaseResponseSchema):
    success: bool = True
    data: CustomerPricingResponse


class CorporatePricingCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    dox_pricing: dict = {}
    non_dox_surface_pricing: dict = {}
    non_dox_air_pricing: dict = {}
    priority_pricing: dict = {}
    reverse_pricing: dict = {}
    fuel_charge_percentage: Decimal = Field(Decimal("15"), ge=0, le=100)
    client_name: Optional[str] = Field(None, max_length=200)
    client_company: Optional[str] = Field(None, max_length=200)
    client_email: Optional[EmailStr] = None

    check_prices = field_validator(*CORPORATE_MATRIX_FIELDS)(_check_prices)


class CorporatePricingUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    dox_pricing: Optional[dict] = None
    non_dox_surface_pricing: Optional[dict] = None
    non_dox_air_pricing: Optional[dict] = None
    priority_pricing: Optional[dict] = None
    reverse_pricing: Optional[dict] = None
    fuel_charge_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    client_name: Optional[str] = Field(None, max_length=200)
    client_company: Optional[str] = Field(None, max_length=200)
    client_email: Optional[EmailStr] = None

    @field_validator(*CORPORATE_MATRIX_FIELDS)
    @classmethod
    def check_prices(cls, v: Optional[dict]) -> Optional[dict]:
        if v is None:
            return v
        return check_price_tree(v)


class RejectRequest(BaseUpdateSchema):
    reason: str = Field(..., min_length=1, max_length=500)


class SendApprovalEmailRequest(BaseUpdateSchema):
    email: EmailStr


class CorporatePricingResponse(BaseResponseSchema):
    id: UUID
    name: str
    status: CorporatePricingStatus
    dox_pricing: dict
    non_dox_surface_pricing: dict
    non_dox_air_pricing: dict
    priority_pricing: dict
    reverse_pricing: dict
    fuel_charge_percentage: Decimal
    client_name: Optional[str] = None
    client_company: Optional[str] = None
    client_email: Optional[str] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    email_sent_at: Optional[datetime] = None
    email_approved_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CorporatePricingEnvelope(BaseResponseSchema):
    success: bool = True
    message: Optional[str] = None
    data: CorporatePricingResponse


class CorporatePricingListResponse(BaseResponseSchema):
    success: bool = True
    data: List[CorporatePricingResponse]
    total: int


class PublicApprovalView(BaseResponseSchema):
    """What the client sees behind the emailed approval link."""
    success: bool = True
    name: str
    status: CorporatePricingStatus
    client_name: Optional[str] = None
    client_company: Optional[str] = None
    dox_pricing: dict
    non_dox_surface_pricing: dict
    non_dox_air_pricing: dict
    priority_pricing: dict
    reverse_pricing: dict
    fuel_charge_percentage: Decimal


class PublicRejectRequest(BaseUpdateSchema):
    reason: Optional[str] = Field(None, max_length=500)
