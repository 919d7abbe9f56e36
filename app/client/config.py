from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Settings of the booking client, read from BOOKING_CLIENT_* variables."""

    BASE_URL: str = "http://localhost:8000/api"
    TIMEOUT_SECONDS: Optional[float] = 30.0

    # Where a 401 sends the user, per login surface
    MEDICINE_LOGIN_ROUTE: str = "/medicine/login"
    ADMIN_LOGIN_ROUTE: str = "/admin/login"

    LOOKUP_DEBOUNCE_MS: int = 100
    SUCCESS_BANNER_MS: int = 2200

    class Config:
        env_prefix = "BOOKING_CLIENT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_client_settings() -> ClientSettings:
    return ClientSettings()
