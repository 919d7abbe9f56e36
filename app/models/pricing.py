"""
Pricing models.

CustomerPricing is a single row (slug "default") holding the public rate card.
CorporatePricing rows are negotiated rate cards that go through an approval flow,
either by an admin or by the client following an emailed approval link.
Rate tables are nested JSON documents of non-negative numbers.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class CorporatePricingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CustomerPricing(Base):
    """Public rate card. There is only ever one row."""
    __tablename__ = "customer_pricing"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    slug: Mapped[str] = mapped_column(String(50), unique=True, default="default", nullable=False)

    standard_dox: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    standard_non_dox: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    priority_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    reverse_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    last_updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
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


class CorporatePricing(Base):
    """Negotiated rate card for one corporate client."""
    __tablename__ = "corporate_pricing"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CorporatePricingStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, approved, rejected"
    )

    dox_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    non_dox_surface_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    non_dox_air_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    priority_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    reverse_pricing: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    fuel_charge_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("15"),
        nullable=False
    )

    client_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    client_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Approval trail
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Email approval
    approval_token: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        index=True
    )
    email_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    email_approved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

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
        return f"<CorporatePricing('{self.name}', status='{self.status}')>"
