from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.schemas.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseUpdateSchema,
    Pagination,
)


class PincodeModes(BaseResponseSchema):
    by_air: bool = False
    by_train: bool = False
    by_road: bool = True


def _check_pincode(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not (len(value) == 6 and value.isdigit()):
        raise ValueError("Pincode must be exactly 6 digits")
    return value


class PincodeAreaCreate(BaseCreateSchema):
    pincode: str
    area: str = Field(..., min_length=1, max_length=150)
    city: str = Field(..., min_length=1, max_length=100)
    district: Optional[str] = Field(None, max_length=100, description="Defaults to city")
    state: str = Field(..., min_length=1, max_length=100)
    serviceable: bool = True
    bulk_order: bool = False
    priority: bool = False
    standard: bool = True
    modes: PincodeModes = Field(default_factory=PincodeModes)

    check_pincode = field_validator("pincode")(_check_pincode)

    @model_validator(mode="after")
    def default_district(self):
        if not self.district:
            self.district = self.city
        return self


class PincodeAreaUpdate(BaseUpdateSchema):
    pincode: Optional[str] = None
    area: Optional[str] = Field(None, min_length=1, max_length=150)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    district: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    serviceable: Optional[bool] = None
    bulk_order: Optional[bool] = None
    priority: Optional[bool] = None
    standard: Optional[bool] = None
    modes: Optional[PincodeModes] = None

    check_pincode = field_validator("pincode")(_check_pincode)


class BulkOrderUpdate(BaseUpdateSchema):
    pincode_ids: List[UUID] = Field(..., min_length=1)
    bulk_order: bool


class PincodeAreaResponse(BaseResponseSchema):
    id: UUID
    pincode: str
    area: str
    city: str
    district: str
    state: str
    serviceable: bool
    bulk_order: bool
    priority: bool
    standard: bool
    modes: PincodeModes
    created_at: datetime
    updated_at: datetime


class PincodeAreaListResponse(BaseResponseSchema):
    success: bool = True
    pincodes: List[PincodeAreaResponse]
    pagination: Pagination


# Public resolver shape: {pincode, state, cities: {city: {districts: {district: {areas: [...]}}}}}

class AreaName(BaseResponseSchema):
    name: str


class DistrictAreas(BaseResponseSchema):
    areas: List[AreaName]


class CityDistricts(BaseResponseSchema):
    districts: Dict[str, DistrictAreas]


class PincodeResolution(BaseResponseSchema):
    pincode: str
    state: str
    cities: Dict[str, CityDistricts]
