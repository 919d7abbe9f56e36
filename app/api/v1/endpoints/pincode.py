from fastapi import APIRouter

from app.api.deps import DB
from app.schemas.pincode import PincodeResolution
from app.services.pincode_service import PincodeService

router = APIRouter(tags=["Pincode"])


@router.get("/{pincode}", response_model=PincodeResolution)
async def resolve_pincode(pincode: str, db: DB):
    """
    Serviceable cities, districts and areas under a pincode.

    400 for a malformed code, 404 when nothing under it is serviceable.
    """
    return await PincodeService(db).resolve(pincode)
