"""
OTP Service for phone verification

Handles OTP generation, sending via SMS, and verification.
"""

import logging
import hashlib
import re
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple

import httpx
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationFailed
from app.models.otp import PhoneOTP
from app.config import settings

logger = logging.getLogger(__name__)

MSG91_FLOW_URL = "https://control.msg91.com/api/v5/flow/"


def _masked(phone: str) -> str:
    return phone[-4:].rjust(10, '*')


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_phone(phone: Optional[str]) -> str:
    """
    Reduce a phone number to its 10 national digits.

    Accepts "+91 98765-43210", "919876543210" and "9876543210".

    Raises:
        ValidationFailed: not a 10-digit Indian mobile number after normalization
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    if len(digits) != 10:
        raise ValidationFailed("Please enter a valid 10-digit mobile number")
    return digits


class OTPService:
    """
    Service for handling OTP operations.
    """

    # OTP Configuration
    OTP_LENGTH = 6
    OTP_EXPIRY_MINUTES = 10
    MAX_ATTEMPTS = 3
    RESEND_COOLDOWN_SECONDS = 30

    def __init__(self, db: AsyncSession):
        self.db = db

    def _generate_otp(self) -> str:
        """Generate a random numeric OTP."""
        return "".join([str(secrets.randbelow(10)) for _ in range(self.OTP_LENGTH)])

    def _hash_otp(self, otp: str) -> str:
        """Hash OTP for storage."""
        return hashlib.sha256(otp.encode()).hexdigest()

    def _verify_hash(self, otp: str, otp_hash: str) -> bool:
        """Verify OTP against stored hash."""
        return secrets.compare_digest(self._hash_otp(otp), otp_hash)

    async def create_otp(
        self,
        phone: str,
        purpose: str = "VERIFY_PHONE"
    ) -> Tuple[str, PhoneOTP]:
        """
        Create a new OTP for the given phone number.

        Args:
            phone: 10-digit phone number
            purpose: Purpose of OTP (VERIFY_PHONE, BOOKING)

        Returns:
            Tuple of (otp_code, otp_record)
        """
        # Invalidate any existing OTPs for this phone and purpose
        await self.db.execute(
            delete(PhoneOTP).where(
                PhoneOTP.phone == phone,
                PhoneOTP.purpose == purpose,
                PhoneOTP.is_verified == False  # noqa: E712
            )
        )

        otp_code = self._generate_otp()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.OTP_EXPIRY_MINUTES)

        otp_record = PhoneOTP(
            phone=phone,
            otp_hash=self._hash_otp(otp_code),
            purpose=purpose,
            expires_at=expires_at,
            max_attempts=self.MAX_ATTEMPTS
        )

        self.db.add(otp_record)
        await self.db.commit()
        await self.db.refresh(otp_record)

        logger.info(f"OTP created for phone {_masked(phone)} purpose={purpose}")

        return otp_code, otp_record

    async def verify_otp(
        self,
        phone: str,
        otp_code: str,
        purpose: str = "VERIFY_PHONE"
    ) -> Tuple[bool, str]:
        """
        Verify an OTP.

        Returns:
            Tuple of (success, message)
        """
        # Find the latest unverified OTP for this phone and purpose
        result = await self.db.execute(
            select(PhoneOTP)
            .where(
                PhoneOTP.phone == phone,
                PhoneOTP.purpose == purpose,
                PhoneOTP.is_verified == False  # noqa: E712
            )
            .order_by(PhoneOTP.created_at.desc())
            .limit(1)
        )
        otp_record = result.scalar_one_or_none()

        if not otp_record:
            logger.warning(f"No OTP found for phone {_masked(phone)}")
            return False, "No OTP found. Please request a new one."

        if otp_record.is_expired:
            logger.warning(f"OTP expired for phone {_masked(phone)}")
            return False, "OTP has expired. Please request a new one."

        if not otp_record.can_attempt:
            logger.warning(f"Max attempts exceeded for phone {_masked(phone)}")
            return False, "Maximum attempts exceeded. Please request a new OTP."

        otp_record.attempts += 1

        if not self._verify_hash(otp_code, otp_record.otp_hash):
            await self.db.commit()
            remaining = otp_record.max_attempts - otp_record.attempts
            logger.warning(f"Invalid OTP attempt for phone {_masked(phone)}, {remaining} left")
            return False, f"Invalid OTP. {remaining} attempts remaining."

        otp_record.is_verified = True
        otp_record.verified_at = datetime.now(timezone.utc)
        await self.db.commit()

        logger.info(f"OTP verified for phone {_masked(phone)}")
        return True, "OTP verified successfully."

    async def can_resend_otp(self, phone: str, purpose: str = "VERIFY_PHONE") -> Tuple[bool, int]:
        """
        Check if OTP can be resent (cooldown check).

        Returns:
            Tuple of (can_resend, seconds_remaining)
        """
        result = await self.db.execute(
            select(PhoneOTP)
            .where(
                PhoneOTP.phone == phone,
                PhoneOTP.purpose == purpose,
            )
            .order_by(PhoneOTP.created_at.desc())
            .limit(1)
        )
        otp_record = result.scalar_one_or_none()

        if not otp_record:
            return True, 0

        time_since = (datetime.now(timezone.utc) - _as_utc(otp_record.created_at)).total_seconds()
        if time_since < self.RESEND_COOLDOWN_SECONDS:
            remaining = int(self.RESEND_COOLDOWN_SECONDS - time_since) + 1
            return False, remaining

        return True, 0


async def purge_expired_otps(db: AsyncSession) -> int:
    """Delete unverified OTPs past their expiry. Returns rows removed."""
    result = await db.execute(
        delete(PhoneOTP).where(
            PhoneOTP.is_verified == False,  # noqa: E712
            PhoneOTP.expires_at < datetime.now(timezone.utc),
        )
    )
    return result.rowcount or 0


async def send_otp_sms(phone: str, otp: str) -> bool:
    """
    Send OTP via SMS using MSG91.

    Args:
        phone: 10-digit phone number
        otp: OTP code

    Returns:
        True if sent successfully, False otherwise
    """
    auth_key = settings.MSG91_AUTH_KEY
    template_id = settings.MSG91_TEMPLATE_ID_OTP

    if not auth_key or not template_id:
        logger.warning("MSG91 not configured, OTP SMS not sent")
        # In development, log the OTP
        logger.info(f"DEV MODE - OTP for {_masked(phone)}: {otp}")
        return True

    headers = {
        "authkey": auth_key,
        "Content-Type": "application/json"
    }
    payload = {
        "template_id": template_id,
        "short_url": "0",
        "recipients": [
            {
                "mobiles": f"91{phone}",
                "otp": otp
            }
        ]
    }

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(MSG91_FLOW_URL, json=payload, headers=headers, timeout=10)
            response.raise_for_status()

            result = response.json()
            if result.get("type") == "success":
                logger.info(f"OTP SMS sent to {_masked(phone)}")
                return True
            logger.error(f"MSG91 error: {result}")
            return False

    except httpx.HTTPError as e:
        logger.error(f"Failed to send OTP SMS: {e}")
        return False
