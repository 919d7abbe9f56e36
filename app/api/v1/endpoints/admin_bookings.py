"""Back office view over every medicine booking."""
from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import DB, require_permission
from app.models.booking import BookingStatus
from app.models.user import Permission
from app.schemas.base import Pagination
from app.schemas.booking import BookingListResponse, BookingResponse
from app.services.booking_service import BookingService

router = APIRouter(
    tags=["Admin - Bookings"],
    dependencies=[Depends(require_permission(Permission.BOOKING_MANAGEMENT.value))],
)


@router.get("", response_model=BookingListResponse)
async def list_all_bookings(
    db: DB,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Consignment number or mobile number"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    bookings, total = await BookingService(db).list_bookings(
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
        search=search,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=ceil(total / limit) if total > 0 else 1,
        ),
    )
