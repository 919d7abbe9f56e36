"""
User model for back office and booking accounts.

One table covers the three kinds of login: admins, office staff and medicine
(booking) users. Admin/office access is narrowed by a list of permission codes;
super admins bypass the list.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class UserRole(str, Enum):
    """Login surface a user belongs to."""
    ADMIN = "admin"
    OFFICE = "office"
    MEDICINE = "medicine"


class Permission(str, Enum):
    """Permission codes granted to admin and office users."""
    PINCODE_MANAGEMENT = "pincodeManagement"
    COLOADER_MANAGEMENT = "coloaderManagement"
    EMPLOYEE_MANAGEMENT = "employeeManagement"
    PRICING_MANAGEMENT = "pricingManagement"
    CONSIGNMENT_MANAGEMENT = "consignmentManagement"
    BOOKING_MANAGEMENT = "bookingManagement"


LOGIN_ROUTES = {
    UserRole.ADMIN.value: "/admin/login",
    UserRole.OFFICE.value: "/office/login",
    UserRole.MEDICINE.value: "/medicine/login",
}


class User(Base):
    """A person who can log in."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.MEDICINE.value,
        nullable=False,
        index=True,
        comment="admin, office, medicine"
    )
    permissions: Mapped[list] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
        comment="Permission codes for admin/office users"
    )

    is_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def has_permission(self, code: str) -> bool:
        if self.is_super_admin:
            return True
        return code in (self.permissions or [])

    @property
    def login_route(self) -> str:
        return LOGIN_ROUTES.get(self.role, "/login")

    def __repr__(self) -> str:
        return f"<User(email='{self.email}', role='{self.role}')>"
