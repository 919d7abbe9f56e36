"""
Medicine booking model.

A booking is one shipment request. Its nested sections (origin, destination,
shipment, package, invoice, billing, charges, payment) are stored as JSON documents
with camelCase keys, exactly as the booking form sends them. The fields used for
lookups are copied into indexed scalar columns.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, BigInteger, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class BookingStatus(str, Enum):
    """Booking lifecycle status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Forward progression order; cancelled sits outside it
STATUS_SEQUENCE = [
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_TRANSIT,
    BookingStatus.ARRIVED,
    BookingStatus.DELIVERED,
]

TERMINAL_STATUSES = {BookingStatus.DELIVERED, BookingStatus.CANCELLED}


class MedicineBooking(Base):
    """One shipment booked by a medicine user."""
    __tablename__ = "medicine_bookings"
    __table_args__ = (
        UniqueConstraint(
            "medicine_user_id", "idempotency_key",
            name="uq_medicine_bookings_user_idempotency_key"
        ),
        Index("ix_medicine_bookings_user_created", "medicine_user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    medicine_user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Identity
    booking_reference: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Same value as the consignment number, as text"
    )
    consignment_number: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        nullable=False,
        index=True
    )
    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Client supplied token that makes resubmission safe"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=BookingStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, confirmed, in_transit, arrived, delivered, cancelled"
    )

    # Nested sections
    origin: Mapped[dict] = mapped_column(JSONType, nullable=False)
    destination: Mapped[dict] = mapped_column(JSONType, nullable=False)
    shipment: Mapped[dict] = mapped_column(JSONType, nullable=False)
    package: Mapped[dict] = mapped_column(JSONType, nullable=False)
    invoice: Mapped[dict] = mapped_column(JSONType, nullable=False)
    billing: Mapped[dict] = mapped_column(JSONType, nullable=False)
    charges: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    payment: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    # Lookup columns
    origin_mobile: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    destination_mobile: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    coloader_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("coloaders.id", ondelete="SET NULL"),
        nullable=True
    )

    status_changed_at: Mapped[Optional[datetime]] = mapped_column(
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

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    def __repr__(self) -> str:
        return f"<MedicineBooking(consignment={self.consignment_number}, status='{self.status}')>"
