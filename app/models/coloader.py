"""
Coloader model.

A coloader is a partner carrier that moves consignments between locations.
Address and route details are kept as JSON documents.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class ColoaderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class ServiceMode(str, Enum):
    AIR = "air"
    ROAD = "road"
    TRAIN = "train"
    SHIP = "ship"


class Coloader(Base):
    """Partner carrier."""
    __tablename__ = "coloaders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    company_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    concern_person: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    website: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    service_modes: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    mobile_numbers: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    company_address: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        comment="pincode, state, city, area, address, flatNo, landmark, gst"
    )
    from_locations: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    to_locations: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    vehicle_details: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Denormalized from company_address for filtering
    state: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    city: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ColoaderStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, approved, rejected, suspended"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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

    def __repr__(self) -> str:
        return f"<Coloader('{self.company_name}', status='{self.status}')>"
