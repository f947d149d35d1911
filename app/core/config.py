"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, gateway, OTP sources, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional, Literal


DEFAULT_OTP_API_URLS = [
    "https://api-kami-nodejs-production-a53d.up.railway.app/api/sms",
    "https://kami-api.up.railway.app/d-group/sms",
    "https://kami-api.up.railway.app/npm-neon/sms",
    "https://kami-api.up.railway.app/mait/sms",
    "https://api-node-js-new-production-b09a.up.railway.app/api/sms",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="kami_bot",
        description="MongoDB database name"
    )

    # WhatsApp multi-device gateway
    WHATSAPP_GATEWAY_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL of the WhatsApp multi-device gateway"
    )
    WHATSAPP_GATEWAY_TOKEN: Optional[str] = Field(
        default=None,
        description="Bearer token for the gateway API"
    )
    WHATSAPP_GATEWAY_TIMEOUT: float = Field(
        default=15.0,
        description="Gateway request timeout in seconds"
    )
    GATEWAY_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Shared secret expected in X-Webhook-Secret on gateway events"
    )

    # OTP monitor
    OTP_API_URLS: List[str] = Field(
        default_factory=lambda: list(DEFAULT_OTP_API_URLS),
        description="SMS panel endpoints polled for OTP rows"
    )
    OTP_POLL_INTERVAL_SECONDS: int = Field(
        default=5,
        description="Pause between two polling rounds"
    )
    OTP_FETCH_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Timeout for a single endpoint fetch"
    )
    OTP_MONITOR_ENABLED: bool = Field(
        default=True,
        description="Start the OTP monitor with the application"
    )
    DEFAULT_CHANNEL_LINK: str = Field(
        default="https://chat.whatsapp.com/YourDefaultLinkHere",
        description="Footer link used when a user has not set one"
    )
    SENT_HISTORY_TTL_DAYS: int = Field(
        default=7,
        description="Days a broadcast key is remembered (0 keeps keys forever)"
    )

    # Sessions / pairing
    PAIRING_TIMEOUT_SECONDS: int = Field(
        default=60,
        description="How long to wait for a pairing code to be entered"
    )
    PAIR_CLIENT_DISPLAY_NAME: str = Field(
        default="Chrome (Linux)",
        description="Client name shown on the phone's linked devices screen"
    )
    SESSION_STARTUP_DELAY_SECONDS: float = Field(
        default=1.0,
        description="Gap between reconnecting stored sessions on startup"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    STATIC_DIR: str = Field(
        default="static",
        description="Directory holding index.html and pic.png"
    )
    PORT: int = Field(
        default=8080,
        description="HTTP port"
    )

    @field_validator("SENT_HISTORY_TTL_DAYS")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("SENT_HISTORY_TTL_DAYS cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_gateway_token(self):
        """Ensure the gateway token is set in production."""
        if self.ENVIRONMENT == "production" and not self.WHATSAPP_GATEWAY_TOKEN:
            raise ValueError("WHATSAPP_GATEWAY_TOKEN is required in production environment")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.WHATSAPP_GATEWAY_URL:
        errors.append("WHATSAPP_GATEWAY_URL is required")

    if settings.OTP_POLL_INTERVAL_SECONDS < 1:
        errors.append("OTP_POLL_INTERVAL_SECONDS must be at least 1")

    if settings.is_production:
        if not settings.WHATSAPP_GATEWAY_TOKEN:
            errors.append("WHATSAPP_GATEWAY_TOKEN is required in production")
        if not settings.GATEWAY_WEBHOOK_SECRET:
            errors.append("GATEWAY_WEBHOOK_SECRET is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
