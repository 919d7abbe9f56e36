"""Consignment pool status for the logged in medicine user."""
from fastapi import APIRouter

from app.api.deps import DB, MedicineUser
from app.schemas.consignment import AssignmentResponse, MyAssignmentsResponse, UsageSummary
from app.services.consignment_service import MSG_EXHAUSTED, MSG_NOT_ASSIGNED, ConsignmentService

router = APIRouter(tags=["Consignment"])


@router.get("/assignments", response_model=MyAssignmentsResponse)
async def my_assignments(current_user: MedicineUser, db: DB):
    """
    Checked by the booking form before submitting: has this user any
    consignment numbers left?
    """
    summary = await ConsignmentService(db).get_summary(current_user.id)
    assignments = summary["assignments"]

    if not assignments:
        message = MSG_NOT_ASSIGNED
    elif summary["availableCount"] <= 0:
        message = MSG_EXHAUSTED
    else:
        message = f"{summary['availableCount']} consignment numbers available"

    return MyAssignmentsResponse(
        has_assignment=bool(assignments),
        assignments=[AssignmentResponse.model_validate(a) for a in assignments],
        summary=UsageSummary(
            total_assigned=summary["totalAssigned"],
            used_count=summary["usedCount"],
            available_count=summary["availableCount"],
            usage_percentage=summary["usagePercentage"],
        ),
        message=message,
    )
