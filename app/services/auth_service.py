from datetime import datetime, timezone
from typing import Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
)
from app.config import settings
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for user login and account creation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def authenticate_user(
        self,
        email: str,
        password: str
    ) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Args:
            email: User's email address
            password: Plain text password

        Returns:
            User object if authentication successful, None otherwise
        """
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for {email.lower()}")
            return None

        if not user.is_active:
            logger.warning(f"Login attempt on deactivated account {user.email}")
            return None

        user.last_login_at = datetime.now(timezone.utc)
        return user

    def create_token(self, user: User) -> Tuple[str, int]:
        """
        Issue an access token carrying the user's role.

        Returns:
            Tuple of (access_token, expires_in_seconds)
        """
        token = create_access_token(user.id, additional_claims={"role": user.role})
        return token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    async def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole,
        phone: Optional[str] = None,
        permissions: Optional[list[str]] = None,
        is_super_admin: bool = False,
    ) -> User:
        existing = await self.db.execute(select(User.id).where(User.email == email.lower()))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A user with this email already exists")

        user = User(
            email=email.lower(),
            password_hash=get_password_hash(password),
            name=name,
            phone=phone,
            role=role.value,
            # Permission codes only mean something for back office users
            permissions=[] if role == UserRole.MEDICINE else list(permissions or []),
            is_super_admin=is_super_admin and role == UserRole.ADMIN,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info(f"User created: {user.email} role={user.role}")
        return user

    async def ensure_seed_admin(self, email: str, password: str) -> Optional[User]:
        """Create the first super admin if no user with that email exists."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        if result.scalar_one_or_none() is not None:
            return None
        return await self.create_user(
            email=email,
            password=password,
            name="Administrator",
            role=UserRole.ADMIN,
            is_super_admin=True,
        )
