"""Login accounts, managed by super admins."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func

from app.api.deps import DB, require_super_admin
from app.models.user import User, UserRole
from app.schemas.auth import UserCreate, UserListResponse, UserResponse
from app.services.auth_service import AuthService

router = APIRouter(
    tags=["Admin - Users"],
    dependencies=[Depends(require_super_admin)],
)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, db: DB):
    user = await AuthService(db).create_user(
        email=data.email,
        password=data.password,
        name=data.name,
        role=data.role,
        phone=data.phone,
        permissions=[p.value for p in data.permissions],
        is_super_admin=data.is_super_admin,
    )
    await db.commit()
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.get("", response_model=UserListResponse)
async def list_users(
    db: DB,
    role: Optional[UserRole] = Query(None),
):
    query = select(User)
    count_query = select(func.count(User.id))
    if role:
        query = query.where(User.role == role.value)
        count_query = count_query.where(User.role == role.value)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(query.order_by(User.created_at.desc()))
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
    )
