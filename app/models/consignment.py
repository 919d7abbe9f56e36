"""
Consignment number pools.

Admins hand each medicine user one or more contiguous ranges of consignment
numbers. Every number handed out to a booking is recorded in consignment_usages,
whose UNIQUE consignment_number column makes a number claimable only once.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, BigInteger, Integer, Numeric, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType


class ConsignmentAssignment(Base):
    """A range of consignment numbers assigned to one medicine user."""
    __tablename__ = "consignment_assignments"
    __table_args__ = (
        Index("ix_consignment_assignments_range", "start_number", "end_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    medicine_user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    start_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_numbers: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

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

    def contains(self, number: int) -> bool:
        return self.start_number <= number <= self.end_number

    def __repr__(self) -> str:
        return f"<ConsignmentAssignment({self.start_number}-{self.end_number})>"


class ConsignmentUsage(Base):
    """A consignment number that has been claimed for a booking."""
    __tablename__ = "consignment_usages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("consignment_assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    medicine_user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    consignment_number: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        nullable=False,
        comment="Uniqueness here is what makes allocation race free"
    )

    booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("medicine_bookings.id", ondelete="SET NULL"),
        nullable=True
    )
    booking_reference: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0"),
        nullable=False
    )
    payment_type: Mapped[str] = mapped_column(
        String(5),
        default="FP",
        nullable=False,
        comment="FP (freight paid) or TP (to pay)"
    )

    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ConsignmentUsage({self.consignment_number})>"
