from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema


class AssignRangeRequest(BaseCreateSchema):
    medicine_user_id: UUID
    start_number: int = Field(..., gt=0)
    end_number: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)


class AssignmentResponse(BaseResponseSchema):
    id: UUID
    medicine_user_id: UUID
    start_number: int
    end_number: int
    total_numbers: int
    is_active: bool
    notes: Optional[str] = None
    assigned_at: datetime


class AssignmentWithUsage(AssignmentResponse):
    used_count: int = 0
    available_count: int = 0


class UsageSummary(BaseResponseSchema):
    total_assigned: int
    used_count: int
    available_count: int
    usage_percentage: float


class MyAssignmentsResponse(BaseResponseSchema):
    """What a medicine user sees before booking."""
    success: bool = True
    has_assignment: bool
    assignments: List[AssignmentResponse]
    summary: UsageSummary
    message: str


class AssignRangeResponse(BaseResponseSchema):
    success: bool = True
    message: str
    assignment: AssignmentResponse


class AdminAssignmentsResponse(BaseResponseSchema):
    success: bool = True
    assignments: List[AssignmentWithUsage]
    total: int


class UsageEntry(BaseResponseSchema):
    consignment_number: int
    booking_id: Optional[UUID] = None
    booking_reference: Optional[str] = None
    total_amount: Decimal
    payment_type: str
    used_at: datetime


class UserUsageResponse(BaseResponseSchema):
    success: bool = True
    summary: UsageSummary
    usage: List[UsageEntry]
