"""Phone verification by one-time code."""
from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB
from app.schemas.otp import OTPResponse, SendOTPRequest, VerifyOTPRequest
from app.services.otp_service import OTPService, normalize_phone, send_otp_sms

router = APIRouter(tags=["OTP"])


@router.post("/send", response_model=OTPResponse)
async def send_otp(data: SendOTPRequest, db: DB):
    """
    Send a 6 digit code to a mobile number.

    A new code can be requested once every 30 seconds.
    """
    phone = normalize_phone(data.phone_number)
    service = OTPService(db)

    can_resend, wait = await service.can_resend_otp(phone)
    if not can_resend:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Please wait {wait} seconds before requesting a new OTP",
        )

    otp_code, _ = await service.create_otp(phone)
    if not await send_otp_sms(phone, otp_code):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send OTP. Please try again.",
        )

    return OTPResponse(
        success=True,
        message="OTP sent successfully",
        expires_in_seconds=OTPService.OTP_EXPIRY_MINUTES * 60,
        resend_in_seconds=OTPService.RESEND_COOLDOWN_SECONDS,
    )


@router.post("/verify", response_model=OTPResponse)
async def verify_otp(data: VerifyOTPRequest, db: DB):
    phone = normalize_phone(data.phone_number)
    verified, message = await OTPService(db).verify_otp(phone, data.otp.strip())
    if not verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
    return OTPResponse(success=True, message=message)
