"""
Pincode serviceability model.

One row per (pincode, area, city). The public pincode resolver groups serviceable
rows for a pincode into city -> district -> areas.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


def default_modes() -> dict:
    return {"byAir": False, "byTrain": False, "byRoad": True}


class PincodeArea(Base):
    """A serviceable (or blocked) area inside a pincode."""
    __tablename__ = "pincode_areas"
    __table_args__ = (
        UniqueConstraint("pincode", "area", "city", name="uq_pincode_area_city"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    pincode: Mapped[str] = mapped_column(String(6), nullable=False, index=True)
    area: Mapped[str] = mapped_column(String(150), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    district: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    serviceable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    bulk_order: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    priority: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    standard: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    modes: Mapped[dict] = mapped_column(
        JSONType,
        default=default_modes,
        nullable=False,
        comment="Transport modes: byAir, byTrain, byRoad"
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

    def __repr__(self) -> str:
        return f"<PincodeArea({self.pincode} {self.area}, {self.city})>"
