"""Employee records."""
from typing import Optional
import logging
import re
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError

from app.api.deps import DB, require_permission
from app.models.employee import Employee
from app.models.user import Permission
from app.schemas.employee import (
    EmployeeCreate,
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
    NextEmployeeIdResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Admin - Employees"],
    dependencies=[Depends(require_permission(Permission.EMPLOYEE_MANAGEMENT.value))],
)

EMPLOYEE_CODE_PREFIX = "EMP"
_CODE_PATTERN = re.compile(rf"^{EMPLOYEE_CODE_PREFIX}(\d+)$")


async def next_employee_code(db) -> str:
    """EMP0001, EMP0002, ... one past the highest code issued so far."""
    result = await db.execute(select(Employee.employee_code))
    highest = 0
    for code in result.scalars().all():
        match = _CODE_PATTERN.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{EMPLOYEE_CODE_PREFIX}{highest + 1:04d}"


async def _get_employee(db, employee_id: uuid.UUID) -> Employee:
    employee = await db.get(Employee, employee_id)
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


async def _ensure_email_free(db, email: str, exclude_id: Optional[uuid.UUID] = None):
    query = select(Employee.id).where(Employee.email == email.lower())
    if exclude_id:
        query = query.where(Employee.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An employee with this email already exists"
        )


@router.get("/next-id", response_model=NextEmployeeIdResponse)
async def get_next_employee_id(db: DB):
    return NextEmployeeIdResponse(next_id=await next_employee_code(db))


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(data: EmployeeCreate, db: DB):
    """Register an employee; the employee code is allocated here."""
    await _ensure_email_free(db, data.email)

    employee = Employee(
        employee_code=await next_employee_code(db),
        **data.model_dump(exclude={"present_address", "permanent_address"}),
        present_address=data.present_address.model_dump(by_alias=True) if data.present_address else None,
        permanent_address=data.permanent_address.model_dump(by_alias=True) if data.permanent_address else None,
    )
    db.add(employee)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Employee code was taken by a concurrent registration, please retry"
        )
    await db.refresh(employee)

    logger.info(f"Employee registered: {employee.employee_code}")
    return EmployeeResponse.model_validate(employee)


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    db: DB,
    search: Optional[str] = Query(None),
):
    query = select(Employee)
    if search:
        query = query.where(or_(
            Employee.name.ilike(f"%{search}%"),
            Employee.email.ilike(f"%{search}%"),
            Employee.employee_code.ilike(f"%{search}%"),
            Employee.phone.ilike(f"%{search}%"),
        ))
    result = await db.execute(query.order_by(Employee.employee_code.asc()))
    employees = result.scalars().all()
    return EmployeeListResponse(
        employees=[EmployeeResponse.model_validate(e) for e in employees],
        total=len(employees),
    )


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: uuid.UUID, db: DB):
    return EmployeeResponse.model_validate(await _get_employee(db, employee_id))


@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(employee_id: uuid.UUID, data: EmployeeUpdate, db: DB):
    employee = await _get_employee(db, employee_id)
    update_data = data.model_dump(exclude_unset=True, exclude={"present_address", "permanent_address"})
    if "phone" in update_data and not update_data["phone"]:
        # phone is required; a blank value leaves it unchanged
        update_data.pop("phone")

    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        await _ensure_email_free(db, update_data["email"], exclude_id=employee.id)

    for field, value in update_data.items():
        setattr(employee, field, value)
    for field in ("present_address", "permanent_address"):
        if field in data.model_fields_set:
            address = getattr(data, field)
            setattr(employee, field, address.model_dump(by_alias=True) if address else None)

    await db.commit()
    await db.refresh(employee)
    return EmployeeResponse.model_validate(employee)


@router.delete("/{employee_id}")
async def delete_employee(employee_id: uuid.UUID, db: DB):
    employee = await _get_employee(db, employee_id)
    await db.delete(employee)
    await db.commit()
    logger.info(f"Employee deleted: {employee.employee_code}")
    return {"success": True, "message": "Employee deleted successfully"}
