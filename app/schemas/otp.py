from typing import Optional

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema


class SendOTPRequest(BaseCreateSchema):
    phone_number: str = Field(..., min_length=10, max_length=16, description="10 digits, +91 or 91 prefix allowed")


class VerifyOTPRequest(BaseCreateSchema):
    phone_number: str = Field(..., min_length=10, max_length=16)
    otp: str = Field(..., min_length=4, max_length=8)


class OTPResponse(BaseResponseSchema):
    success: bool
    message: str
    expires_in_seconds: Optional[int] = None
    resend_in_seconds: Optional[int] = None
