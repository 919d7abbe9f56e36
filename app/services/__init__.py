# Services module
from app.services.booking_service import BookingService
from app.services.consignment_service import ConsignmentService
from app.services.pincode_service import PincodeService
from app.services.otp_service import OTPService
from app.services.upload_service import UploadService
from app.services.email_service import EmailService, get_email_service

__all__ = [
    "BookingService",
    "ConsignmentService",
    "PincodeService",
    "OTPService",
    "UploadService",
    "EmailService",
    "get_email_service",
]
