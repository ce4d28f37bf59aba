"""Application configuration."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="DocQueue API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # JWT (tokens are issued by the identity provider, only verified here)
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Payment gateway
    razorpay_key_id: str = Field(default="", alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str = Field(..., alias="RAZORPAY_KEY_SECRET")
    payment_gateway_url: str = Field(
        default="https://api.razorpay.com/v1", alias="PAYMENT_GATEWAY_URL"
    )
    payment_gateway_timeout_seconds: float = Field(
        default=10.0, alias="PAYMENT_GATEWAY_TIMEOUT_SECONDS"
    )
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")

    # Booking rules
    booking_window_days: int = Field(default=90, alias="BOOKING_WINDOW_DAYS")
    cancellation_cutoff_hours: int = Field(default=2, alias="CANCELLATION_CUTOFF_HOURS")
    default_daily_capacity: int = Field(default=10, alias="DEFAULT_DAILY_CAPACITY")
    default_consultation_fee: Decimal = Field(
        default=Decimal("500"), alias="DEFAULT_CONSULTATION_FEE"
    )
    minutes_per_patient: int = Field(default=15, alias="MINUTES_PER_PATIENT")
    clinic_timezone: str = Field(default="UTC", alias="CLINIC_TIMEZONE")
    schedule_cache_ttl_seconds: int = Field(default=300, alias="SCHEDULE_CACHE_TTL_SECONDS")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
