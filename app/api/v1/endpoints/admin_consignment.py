"""Consignment number pools for medicine users."""
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from app.api.deps import DB, CurrentUser, require_permission
from app.core.errors import NotFoundError
from app.models.consignment import ConsignmentAssignment
from app.models.user import Permission, User, UserRole
from app.schemas.consignment import (
    AdminAssignmentsResponse,
    AssignmentResponse,
    AssignmentWithUsage,
    AssignRangeRequest,
    AssignRangeResponse,
    UsageEntry,
    UsageSummary,
    UserUsageResponse,
)
from app.services.consignment_service import ConsignmentService

router = APIRouter(
    tags=["Admin - Consignment"],
    dependencies=[Depends(require_permission(Permission.CONSIGNMENT_MANAGEMENT.value))],
)


@router.post("/assign-medicine-user", response_model=AssignRangeResponse, status_code=status.HTTP_201_CREATED)
async def assign_to_medicine_user(data: AssignRangeRequest, current_user: CurrentUser, db: DB):
    """
    Give a medicine user a contiguous range of consignment numbers.

    Start must be at least 871026572, at most 10,000 numbers per range, and
    the range may not overlap any active range.
    """
    assignment = await ConsignmentService(db).assign_range(
        data.medicine_user_id,
        data.start_number,
        data.end_number,
        notes=data.notes,
        assigned_by=current_user.id,
    )
    await db.commit()
    await db.refresh(assignment)
    return AssignRangeResponse(
        message=(
            f"Consignment numbers {assignment.start_number} to {assignment.end_number} "
            f"assigned successfully"
        ),
        assignment=AssignmentResponse.model_validate(assignment),
    )


@router.get("/assignments", response_model=AdminAssignmentsResponse)
async def list_assignments(db: DB):
    """Every active range with how many of its numbers are used."""
    result = await db.execute(
        select(ConsignmentAssignment)
        .where(ConsignmentAssignment.is_active == True)  # noqa: E712
        .order_by(ConsignmentAssignment.start_number.asc())
    )
    assignments = result.scalars().all()
    used = await ConsignmentService(db).used_count_by_assignment(assignments)

    items = []
    for a in assignments:
        item = AssignmentWithUsage.model_validate(a)
        item.used_count = used.get(a.id, 0)
        item.available_count = a.total_numbers - item.used_count
        items.append(item)

    return AdminAssignmentsResponse(assignments=items, total=len(items))


@router.get("/usage/medicine-user/{medicine_user_id}", response_model=UserUsageResponse)
async def medicine_user_usage(medicine_user_id: uuid.UUID, db: DB):
    user = await db.get(User, medicine_user_id)
    if user is None or user.role != UserRole.MEDICINE.value:
        raise NotFoundError("Medicine user not found.")

    service = ConsignmentService(db)
    summary = await service.get_summary(medicine_user_id)
    usage = await service.recent_usage(medicine_user_id)

    return UserUsageResponse(
        summary=UsageSummary(
            total_assigned=summary["totalAssigned"],
            used_count=summary["usedCount"],
            available_count=summary["availableCount"],
            usage_percentage=summary["usagePercentage"],
        ),
        usage=[UsageEntry.model_validate(u) for u in usage],
    )
