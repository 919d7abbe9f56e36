"""Medicine booking endpoints."""
from math import ceil
from typing import Literal, Optional
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Header, Query, Request, Response, status
from starlette.datastructures import UploadFile
from starlette.concurrency import run_in_threadpool

from app.api.deps import DB, CurrentUser, MedicineUser
from app.core.errors import UploadError
from app.models.booking import BookingStatus
from app.schemas.base import Pagination
from app.schemas.booking import (
    AddressLookupResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingDetailResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatusResponse,
    BookingStatusUpdate,
    BookingSummary,
    LookupAddress,
    UploadImagesResponse,
)
from app.services.booking_service import BookingService
from app.services.email_service import send_booking_notifications
from app.services.upload_service import UploadService


logger = logging.getLogger(__name__)

router = APIRouter()


def booking_snapshot(booking) -> dict:
    """Plain data copy for work that outlives the request session."""
    return {
        "consignmentNumber": booking.consignment_number,
        "bookingReference": booking.booking_reference,
        "origin": dict(booking.origin),
        "destination": dict(booking.destination),
        "shipment": dict(booking.shipment),
        "charges": dict(booking.charges),
    }


async def _read_files(form, field: str) -> list[tuple[bytes, str, str]]:
    files = []
    for item in form.getlist(field) + form.getlist(f"{field}[]"):
        if not isinstance(item, UploadFile):
            continue
        content = await item.read()
        files.append((content, item.filename or "image", item.content_type or "application/octet-stream"))
    return files


@router.post("/upload-images", response_model=UploadImagesResponse)
async def upload_images(
    request: Request,
    current_user: MedicineUser,
):
    """
    Upload package and invoice images before creating a booking.

    Multipart fields: packageImages, invoiceImages (repeatable; the
    ``packageImages[]`` spelling is accepted too). JPEG, PNG or WEBP,
    5MB and 10 files per field at most.
    """
    form = await request.form()
    package_files = await _read_files(form, "packageImages")
    invoice_files = await _read_files(form, "invoiceImages")

    if not package_files and not invoice_files:
        raise UploadError("No files uploaded")

    data = await run_in_threadpool(UploadService.upload_booking_images, package_files, invoice_files)
    count = len(data["packageImages"]) + len(data["invoiceImages"])
    logger.info(f"User {current_user.id} uploaded {count} booking images")

    return UploadImagesResponse(
        message=f"{count} image(s) uploaded successfully",
        data=data,
    )


@router.post(
    "",
    response_model=BookingCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    data: BookingCreate,
    response: Response,
    background_tasks: BackgroundTasks,
    current_user: MedicineUser,
    db: DB,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=100),
):
    """
    Create a booking for the logged in medicine user.

    Every step rule is re-checked, charges are recomputed and the next free
    consignment number is claimed. Resending the same Idempotency-Key returns
    the original booking with 200 and claims nothing.
    """
    service = BookingService(db)
    booking, created = await service.create_booking(current_user, data, idempotency_key)
    await db.commit()
    await db.refresh(booking)

    if created:
        background_tasks.add_task(send_booking_notifications, booking_snapshot(booking))
        message = "Booking created successfully"
    else:
        response.status_code = status.HTTP_200_OK
        message = "Booking already submitted"

    return BookingCreateResponse(
        message=message,
        replayed=not created,
        booking=BookingSummary.model_validate(booking),
    )


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: MedicineUser,
    db: DB,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Bookings of the logged in medicine user, newest first."""
    bookings, total = await BookingService(db).list_bookings(
        page=page,
        limit=limit,
        user_id=current_user.id,
        status=status_filter.value if status_filter else None,
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


@router.get("/lookup", response_model=AddressLookupResponse)
async def lookup_addresses(
    current_user: MedicineUser,
    db: DB,
    phone: str = Query(..., description="10 digit mobile number"),
    role: Literal["origin", "destination", "any"] = Query("any"),
):
    """Previously used addresses for a mobile number, for auto-fill."""
    addresses = await BookingService(db).lookup_addresses(phone, None if role == "any" else role)
    return AddressLookupResponse(
        count=len(addresses),
        addresses=[LookupAddress.model_validate(a) for a in addresses],
    )


@router.get("/reference/{reference}", response_model=BookingDetailResponse)
async def get_booking_by_reference(reference: str, current_user: CurrentUser, db: DB):
    booking = await BookingService(db).get_by_reference(reference)
    BookingService.ensure_visible(booking, current_user)
    return BookingDetailResponse(booking=BookingResponse.model_validate(booking))


@router.get("/consignment/{consignment_number}", response_model=BookingDetailResponse)
async def get_booking_by_consignment(consignment_number: int, current_user: CurrentUser, db: DB):
    booking = await BookingService(db).get_by_consignment(consignment_number)
    BookingService.ensure_visible(booking, current_user)
    return BookingDetailResponse(booking=BookingResponse.model_validate(booking))


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(booking_id: uuid.UUID, current_user: CurrentUser, db: DB):
    """Get a booking. Medicine users only see their own."""
    booking = await BookingService(db).get_for_user(booking_id, current_user)
    return BookingDetailResponse(booking=BookingResponse.model_validate(booking))


@router.patch("/{booking_id}/status", response_model=BookingStatusResponse)
async def update_booking_status(
    booking_id: uuid.UUID,
    data: BookingStatusUpdate,
    current_user: CurrentUser,
    db: DB,
):
    """
    Move a booking along pending -> confirmed -> in_transit -> arrived -> delivered,
    or cancel it. Medicine users may only cancel their own bookings.
    """
    booking = await BookingService(db).change_status(booking_id, data.status, current_user)
    await db.commit()
    await db.refresh(booking)
    return BookingStatusResponse(
        message=f"Booking status updated to {booking.status}",
        booking=BookingResponse.model_validate(booking),
    )
