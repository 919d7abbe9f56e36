"""Serviceable pincode area management."""
from typing import Optional
import logging
import uuid
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, or_, update

from app.api.deps import DB, require_permission
from app.models.pincode import PincodeArea
from app.models.user import Permission
from app.schemas.base import Pagination
from app.schemas.pincode import (
    BulkOrderUpdate,
    PincodeAreaCreate,
    PincodeAreaListResponse,
    PincodeAreaResponse,
    PincodeAreaUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Admin - Pincodes"],
    dependencies=[Depends(require_permission(Permission.PINCODE_MANAGEMENT.value))],
)


async def _get_area(db, pincode_id: uuid.UUID) -> PincodeArea:
    area = await db.get(PincodeArea, pincode_id)
    if not area:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pincode not found")
    return area


async def _ensure_unique(db, pincode: str, area: str, city: str, exclude_id: Optional[uuid.UUID] = None):
    query = select(PincodeArea.id).where(
        PincodeArea.pincode == pincode,
        func.lower(PincodeArea.area) == area.lower(),
        func.lower(PincodeArea.city) == city.lower(),
    )
    if exclude_id:
        query = query.where(PincodeArea.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This pincode, area and city combination already exists"
        )


@router.get("", response_model=PincodeAreaListResponse)
async def list_pincodes(
    db: DB,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
):
    """Paginated pincode areas, filterable by state and city."""
    filters = []
    if search:
        filters.append(or_(
            PincodeArea.pincode.ilike(f"%{search}%"),
            PincodeArea.area.ilike(f"%{search}%"),
            PincodeArea.city.ilike(f"%{search}%"),
        ))
    if state:
        filters.append(PincodeArea.state.ilike(state))
    if city:
        filters.append(PincodeArea.city.ilike(city))

    total_result = await db.execute(select(func.count(PincodeArea.id)).where(*filters))
    total = total_result.scalar() or 0

    query = (
        select(PincodeArea)
        .where(*filters)
        .order_by(PincodeArea.pincode.asc(), PincodeArea.area.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)

    return PincodeAreaListResponse(
        pincodes=[PincodeAreaResponse.model_validate(p) for p in result.scalars().all()],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=ceil(total / limit) if total > 0 else 1,
        ),
    )


@router.post("", response_model=PincodeAreaResponse, status_code=status.HTTP_201_CREATED)
async def create_pincode(data: PincodeAreaCreate, db: DB):
    await _ensure_unique(db, data.pincode, data.area, data.city)

    area = PincodeArea(
        **data.model_dump(exclude={"modes"}),
        modes=data.modes.model_dump(by_alias=True),
    )
    db.add(area)
    await db.commit()
    await db.refresh(area)

    logger.info(f"Pincode area added: {area.pincode} {area.area}, {area.city}")
    return PincodeAreaResponse.model_validate(area)


# Registered before /{pincode_id} so "bulk-order" is not parsed as an id
@router.patch("/bulk-order")
async def set_bulk_order(data: BulkOrderUpdate, db: DB):
    """Flag or unflag many pincode areas for bulk orders at once."""
    result = await db.execute(
        update(PincodeArea)
        .where(PincodeArea.id.in_(data.pincode_ids))
        .values(bulk_order=data.bulk_order)
    )
    await db.commit()
    return {
        "success": True,
        "message": f"Bulk order updated for {result.rowcount} pincodes",
        "modifiedCount": result.rowcount,
    }


@router.put("/{pincode_id}", response_model=PincodeAreaResponse)
async def update_pincode(pincode_id: uuid.UUID, data: PincodeAreaUpdate, db: DB):
    area = await _get_area(db, pincode_id)
    update_data = data.model_dump(exclude_unset=True, exclude={"modes"})

    if {"pincode", "area", "city"} & update_data.keys():
        await _ensure_unique(
            db,
            update_data.get("pincode", area.pincode),
            update_data.get("area", area.area),
            update_data.get("city", area.city),
            exclude_id=area.id,
        )

    for field, value in update_data.items():
        setattr(area, field, value)
    if data.modes is not None:
        area.modes = data.modes.model_dump(by_alias=True)
    if "district" in update_data and not update_data["district"]:
        area.district = area.city

    await db.commit()
    await db.refresh(area)
    return PincodeAreaResponse.model_validate(area)


@router.delete("/{pincode_id}")
async def delete_pincode(pincode_id: uuid.UUID, db: DB):
    area = await _get_area(db, pincode_id)
    await db.delete(area)
    await db.commit()
    logger.info(f"Pincode area deleted: {area.pincode} {area.area}")
    return {"success": True, "message": "Pincode deleted successfully"}
