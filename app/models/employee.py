"""Employee model."""
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import String, Boolean, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class Employee(Base):
    """Staff member record. Codes run EMP0001, EMP0002, ..."""
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    employee_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    alternative_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)
    qualification: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    aadhar_no: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)
    pan_no: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    present_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    permanent_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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
        return f"<Employee({self.employee_code}, '{self.name}')>"
