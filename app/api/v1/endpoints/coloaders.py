"""Coloader (partner carrier) management."""
from datetime import datetime, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, or_

from app.api.deps import DB, require_permission
from app.models.coloader import Coloader, ColoaderStatus, ServiceMode
from app.models.user import Permission
from app.schemas.booking import BookingDetailResponse, BookingResponse, ColoaderAssignRequest
from app.schemas.coloader import (
    ColoaderCreate,
    ColoaderListResponse,
    ColoaderResponse,
    ColoaderStats,
    ColoaderStatusUpdate,
    ColoaderUpdate,
)
from app.services.booking_service import BookingService

logger = logging.getLogger(__name__)

require_coloader_management = require_permission(Permission.COLOADER_MANAGEMENT.value)

router = APIRouter(tags=["Admin - Coloaders"])

# PUT /admin/bookings/{id}/coloader lives under a different prefix
booking_router = APIRouter(tags=["Admin - Coloaders"])


def _documents(data) -> dict:
    """JSON columns are stored with camelCase keys, like the booking sections."""
    return {
        "company_address": data.company_address.model_dump(by_alias=True),
        "from_locations": [loc.model_dump(by_alias=True) for loc in data.from_locations],
        "to_locations": [loc.model_dump(by_alias=True) for loc in data.to_locations],
        "vehicle_details": [v.model_dump(by_alias=True) for v in data.vehicle_details],
    }


async def _get_coloader(db, coloader_id: uuid.UUID) -> Coloader:
    coloader = await db.get(Coloader, coloader_id)
    if not coloader:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coloader not found")
    return coloader


async def _ensure_email_free(db, email: str, exclude_id: Optional[uuid.UUID] = None):
    query = select(Coloader.id).where(Coloader.email == email.lower())
    if exclude_id:
        query = query.where(Coloader.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A coloader with this email already exists"
        )


@router.post(
    "",
    response_model=ColoaderResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_coloader_management)]
)
async def create_coloader(data: ColoaderCreate, db: DB):
    """Register a coloader. New coloaders start as pending."""
    await _ensure_email_free(db, data.email)

    coloader = Coloader(
        company_name=data.company_name,
        concern_person=data.concern_person,
        email=data.email,
        website=data.website,
        service_modes=[m.value for m in data.service_modes],
        mobile_numbers=data.mobile_numbers,
        state=data.company_address.state,
        city=data.company_address.city,
        status=ColoaderStatus.PENDING.value,
        notes=data.notes,
        **_documents(data),
    )
    db.add(coloader)
    await db.commit()
    await db.refresh(coloader)

    logger.info(f"Coloader registered: {coloader.company_name}")
    return ColoaderResponse.model_validate(coloader)


@router.get(
    "",
    response_model=ColoaderListResponse,
    dependencies=[Depends(require_coloader_management)]
)
async def list_coloaders(
    db: DB,
    search: Optional[str] = Query(None),
    status_filter: Optional[ColoaderStatus] = Query(None, alias="status"),
    service_mode: Optional[ServiceMode] = Query(None, alias="serviceMode"),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
):
    query = select(Coloader)

    if search:
        query = query.where(or_(
            Coloader.company_name.ilike(f"%{search}%"),
            Coloader.concern_person.ilike(f"%{search}%"),
            Coloader.email.ilike(f"%{search}%"),
        ))
    if status_filter:
        query = query.where(Coloader.status == status_filter.value)
    if state:
        query = query.where(Coloader.state.ilike(state))
    if city:
        query = query.where(Coloader.city.ilike(city))

    result = await db.execute(query.order_by(Coloader.created_at.desc()))
    coloaders = list(result.scalars().all())

    # service_modes is a JSON list; filtered here to stay portable across databases
    if service_mode:
        coloaders = [c for c in coloaders if service_mode.value in (c.service_modes or [])]

    return ColoaderListResponse(
        coloaders=[ColoaderResponse.model_validate(c) for c in coloaders],
        total=len(coloaders),
    )


@router.get(
    "/stats",
    response_model=ColoaderStats,
    dependencies=[Depends(require_coloader_management)]
)
async def coloader_stats(db: DB):
    """Counts by status and by service mode."""
    status_rows = await db.execute(
        select(Coloader.status, func.count(Coloader.id)).group_by(Coloader.status)
    )
    by_status = {s.value: 0 for s in ColoaderStatus}
    by_status.update({row[0]: row[1] for row in status_rows.all()})

    modes_result = await db.execute(select(Coloader.service_modes, Coloader.is_active))
    by_service_mode = {m.value: 0 for m in ServiceMode}
    total = 0
    active = 0
    for modes, is_active in modes_result.all():
        total += 1
        if is_active:
            active += 1
        for mode in modes or []:
            by_service_mode[mode] = by_service_mode.get(mode, 0) + 1

    return ColoaderStats(
        total=total,
        active=active,
        by_status=by_status,
        by_service_mode=by_service_mode,
    )


@router.get(
    "/{coloader_id}",
    response_model=ColoaderResponse,
    dependencies=[Depends(require_coloader_management)]
)
async def get_coloader(coloader_id: uuid.UUID, db: DB):
    return ColoaderResponse.model_validate(await _get_coloader(db, coloader_id))


@router.put(
    "/{coloader_id}",
    response_model=ColoaderResponse,
    dependencies=[Depends(require_coloader_management)]
)
async def update_coloader(coloader_id: uuid.UUID, data: ColoaderUpdate, db: DB):
    coloader = await _get_coloader(db, coloader_id)
    update_data = data.model_dump(
        exclude_unset=True,
        exclude={"company_address", "from_locations", "to_locations", "vehicle_details", "service_modes"},
    )

    if "email" in update_data and update_data["email"]:
        update_data["email"] = update_data["email"].lower()
        await _ensure_email_free(db, update_data["email"], exclude_id=coloader.id)

    for field, value in update_data.items():
        setattr(coloader, field, value)

    if data.service_modes is not None:
        coloader.service_modes = [m.value for m in data.service_modes]
    if data.company_address is not None:
        coloader.company_address = data.company_address.model_dump(by_alias=True)
        coloader.state = data.company_address.state
        coloader.city = data.company_address.city
    for field in ("from_locations", "to_locations", "vehicle_details"):
        items = getattr(data, field)
        if items is not None:
            setattr(coloader, field, [item.model_dump(by_alias=True) for item in items])

    await db.commit()
    await db.refresh(coloader)
    return ColoaderResponse.model_validate(coloader)


@router.patch(
    "/{coloader_id}/status",
    response_model=ColoaderResponse,
    dependencies=[Depends(require_coloader_management)]
)
async def update_coloader_status(coloader_id: uuid.UUID, data: ColoaderStatusUpdate, db: DB):
    """Approve, reject or suspend a coloader."""
    coloader = await _get_coloader(db, coloader_id)

    coloader.status = data.status.value
    if data.status == ColoaderStatus.APPROVED:
        coloader.approved_at = datetime.now(timezone.utc)
        coloader.rejection_reason = None
        coloader.is_active = True
    elif data.status == ColoaderStatus.REJECTED:
        coloader.rejection_reason = data.rejection_reason
        coloader.is_active = False
    elif data.status == ColoaderStatus.SUSPENDED:
        coloader.is_active = False

    await db.commit()
    await db.refresh(coloader)
    logger.info(f"Coloader {coloader.company_name} status -> {coloader.status}")
    return ColoaderResponse.model_validate(coloader)


@router.delete(
    "/{coloader_id}",
    dependencies=[Depends(require_coloader_management)]
)
async def delete_coloader(coloader_id: uuid.UUID, db: DB):
    coloader = await _get_coloader(db, coloader_id)
    await db.delete(coloader)
    await db.commit()
    logger.info(f"Coloader deleted: {coloader.company_name}")
    return {"success": True, "message": "Coloader deleted successfully"}


@booking_router.put(
    "/{booking_id}/coloader",
    response_model=BookingDetailResponse,
    dependencies=[Depends(require_coloader_management)]
)
async def assign_coloader_to_booking(booking_id: uuid.UUID, data: ColoaderAssignRequest, db: DB):
    """Hand a booking to a coloader."""
    booking = await BookingService(db).assign_coloader(booking_id, data.coloader_id)
    await db.commit()
    await db.refresh(booking)
    return BookingDetailResponse(booking=BookingResponse.model_validate(booking))
