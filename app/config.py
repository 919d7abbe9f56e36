from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from decimal import Decimal
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 720

    # App Settings
    APP_NAME: str = "Courier Booking Back Office"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Email/SMTP Settings (Gmail)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""  # Your Gmail address
    SMTP_PASSWORD: str = ""  # Gmail App Password
    SMTP_FROM_EMAIL: str = ""  # Sender email (defaults to SMTP_USER)
    SMTP_FROM_NAME: str = "Courier Bookings"

    # Frontend URL for email links
    FRONTEND_URL: str = "http://localhost:5173"

    # SMS Gateway (MSG91)
    MSG91_AUTH_KEY: str = ""
    MSG91_TEMPLATE_ID_OTP: str = ""  # DLT Template ID for OTP

    # Supabase Storage Settings
    SUPABASE_URL: str = ""  # e.g., "https://xxxx.supabase.co"
    SUPABASE_SERVICE_KEY: str = ""  # Service role key (NOT anon key)
    SUPABASE_STORAGE_BUCKET: str = "uploads"

    # Booking rules
    GST_RATE: Decimal = Decimal("0.18")
    VOLUMETRIC_DIVISOR: Decimal = Decimal("5000")
    EWAYBILL_THRESHOLD: Decimal = Decimal("50000")
    CONSIGNMENT_MIN_NUMBER: int = 871026572
    CONSIGNMENT_MAX_BATCH: int = 10000
    ADDRESS_LOOKUP_LIMIT: int = 25  # Recent bookings scanned per phone lookup

    # Background jobs
    SCHEDULER_ENABLED: bool = True
    OTP_CLEANUP_INTERVAL_MINUTES: int = 30

    # Optional seed admin created on first start
    SEED_ADMIN_EMAIL: Optional[str] = None
    SEED_ADMIN_PASSWORD: Optional[str] = None

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
