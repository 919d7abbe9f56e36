"""Pincode resolver: groups serviceable areas of a pincode by city and district."""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationFailed
from app.models.pincode import PincodeArea
from app.services.booking_rules import is_valid_pincode


logger = logging.getLogger(__name__)


class PincodeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, pincode: str) -> dict[str, Any]:
        """
        Serviceable areas for a pincode.

        Returns:
            {"pincode", "state", "cities": {city: {"districts": {district: {"areas": [{"name"}]}}}}}

        Raises:
            ValidationFailed: pincode is not exactly 6 digits
            NotFoundError: no serviceable area under this pincode
        """
        if not is_valid_pincode(pincode):
            raise ValidationFailed("Pincode must be exactly 6 digits")

        stmt = (
            select(PincodeArea)
            .where(
                PincodeArea.pincode == pincode,
                PincodeArea.serviceable == True,  # noqa: E712
            )
            .order_by(PincodeArea.city.asc(), PincodeArea.district.asc(), PincodeArea.area.asc())
        )
        result = await self.db.execute(stmt)
        rows = result.scalars().all()

        if not rows:
            logger.info(f"Pincode {pincode} is not serviceable")
            raise NotFoundError("Pincode not serviceable")

        cities: dict[str, Any] = {}
        for row in rows:
            districts = cities.setdefault(row.city, {"districts": {}})["districts"]
            areas = districts.setdefault(row.district or row.city, {"areas": []})["areas"]
            areas.append({"name": row.area})

        return {
            "pincode": pincode,
            "state": rows[0].state,
            "cities": cities,
        }
