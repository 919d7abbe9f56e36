"""
Phone OTP Model

Stores OTPs for phone number verification during booking.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PhoneOTP(Base):
    """
    OTP storage for phone verification.
    OTPs expire after a configured time and have attempt limits.
    """
    __tablename__ = "phone_otps"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Phone number (indexed for lookups)
    phone: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True
    )

    # OTP code (hashed)
    otp_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    purpose: Mapped[str] = mapped_column(
        String(50),
        default="VERIFY_PHONE",
        nullable=False,
        comment="VERIFY_PHONE, BOOKING"
    )

    # Verification status
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    # Attempt tracking
    attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )
    max_attempts: Mapped[int] = mapped_column(
        Integer,
        default=3,
        nullable=False
    )

    # Expiry
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    @property
    def is_expired(self) -> bool:
        """Check if OTP has expired."""
        return datetime.now(timezone.utc) > _as_utc(self.expires_at)

    @property
    def can_attempt(self) -> bool:
        """Check if more attempts are allowed."""
        return self.attempts < self.max_attempts and not self.is_expired

    def __repr__(self) -> str:
        return f"<PhoneOTP(phone='***{self.phone[-4:]}', verified={self.is_verified})>"
