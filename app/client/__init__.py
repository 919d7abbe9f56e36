"""
Async client for the booking API.

The booking wizard, its auto-fill helpers and the submission orchestrator live
here. They talk to the server only through BookingApiClient.
"""
from app.client.address_autofill import AddressAutofill, AutofillState
from app.client.api_client import ApiError, BookingApiClient, SessionExpired
from app.client.config import ClientSettings, get_client_settings
from app.client.pincode_lookup import PincodeAutofill
from app.client.session import SessionContext
from app.client.submission import BookingSubmitter, SubmissionResult
from app.client.wizard import BookingWizard, Step

__all__ = [
    "AddressAutofill",
    "AutofillState",
    "ApiError",
    "BookingApiClient",
    "SessionExpired",
    "ClientSettings",
    "get_client_settings",
    "PincodeAutofill",
    "SessionContext",
    "BookingSubmitter",
    "SubmissionResult",
    "BookingWizard",
    "Step",
]
