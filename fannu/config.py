"""
FanNu configuration
"""

from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project paths
    BASE_DIR: Path = Path(__file__).parent.parent

    environment: str = Field(default="development")
    base_url: str = Field(default="http://localhost:8000")

    # Database
    database_url: str = Field(default="sqlite:///./data/fannu.db")

    # Auth (identity is asserted by the fronting gateway)
    auth_user_header: str = Field(default="X-User-Id")
    admin_password_hash: str = Field(default="")

    # Payments
    simulate_payments: bool = Field(default=True)
    default_currency: str = Field(default="ETB")
    payment_webhook_secret: str = Field(default="")
    payment_signature_header: str = Field(default="X-FanNu-Signature")

    # Support contact shown in page footers
    support_whatsapp: str = Field(default="+251900000000")

    # SMTP notifications
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_address: str = Field(default="")
    smtp_password: str = Field(default="")
    notify_creators: bool = Field(default=True)

    # Scheduler
    dispatch_interval_minutes: int = Field(default=1)

    # Public page cache
    page_cache_ttl_seconds: int = Field(default=60)

    # Logging
    log_level: str = Field(default="INFO")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def support_link(self) -> str:
        """WhatsApp deep link for the support contact"""
        digits = "".join(ch for ch in self.support_whatsapp if ch.isdigit())
        return f"https://wa.me/{digits}"


@lru_cache()
def get_settings() -> Settings:
    """Return the settings singleton"""
    return Settings()


settings = get_settings()
