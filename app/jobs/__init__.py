"""
Background Jobs Module

Handles scheduled housekeeping:
- Expired OTP cleanup
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from app.jobs.otp_cleanup import purge_expired_otps_job

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "purge_expired_otps_job",
]
