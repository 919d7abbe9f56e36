"""OTP housekeeping job."""

import logging

from app.database import get_db_session
from app.services.otp_service import purge_expired_otps

logger = logging.getLogger(__name__)


async def purge_expired_otps_job() -> int:
    """Delete expired, unverified OTP rows. Errors are logged, never raised."""
    try:
        async with get_db_session() as db:
            removed = await purge_expired_otps(db)
    except Exception as e:
        logger.error(f"OTP cleanup failed: {e}")
        return 0

    if removed:
        logger.info(f"OTP cleanup removed {removed} expired codes")
    return removed
