from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.security import verify_access_token
from app.models.user import User, UserRole


logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401 rather than FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user.
    Validates the JWT token and returns the user object.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    user_id = verify_access_token(credentials.credentials)
    if user_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid user_id in token: {user_id}")
        raise credentials_exception

    user = await db.get(User, user_uuid)
    if user is None:
        logger.warning(f"User {user_id} from token no longer exists")
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    return user


def require_role(*roles: UserRole):
    """
    Dependency factory to restrict an endpoint to some login surfaces.

    Usage:
        @router.post("/", dependencies=[Depends(require_role(UserRole.MEDICINE))])
    """
    allowed = {r.value for r in roles}

    async def role_dependency(
        user: Annotated[User, Depends(get_current_user)]
    ) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires role: {', '.join(sorted(allowed))}"
            )
        return user

    return role_dependency


def require_permission(code: str):
    """
    Dependency factory to require an admin/office permission code.
    Super admins pass every check.
    """
    async def permission_dependency(
        user: Annotated[User, Depends(get_current_user)]
    ) -> User:
        if user.role == UserRole.MEDICINE.value or not user.has_permission(code):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Required: {code}"
            )
        return user

    return permission_dependency


async def require_super_admin(
    user: Annotated[User, Depends(get_current_user)]
) -> User:
    if not user.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required"
        )
    return user


# Type aliases for cleaner endpoint signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
DB = Annotated[AsyncSession, Depends(get_db)]
MedicineUser = Annotated[User, Depends(require_role(UserRole.MEDICINE))]
