"""Service configuration pulled from environment variables via pydantic."""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-background-networking",
    "--disable-sync",
    "--no-first-run",
    "--no-default-browser-check",
]


class Settings(BaseSettings):
    """Environment-driven configuration for the KCC showtimes service."""
    model_config = SettingsConfigDict(env_prefix="KCC_", extra="ignore", populate_by_name=True)

    booking_url: str = "https://kccmultiplex.lk/buy-tickets/"
    site_timezone: str = "Asia/Colombo"
    date_format: str = "%d-%m-%Y"

    cache_ttl_seconds: float = 600
    single_flight: bool = True

    # Pauses and timeouts for the booking flow, in milliseconds
    settle_ms: int = 250
    short_timeout_ms: int = 2000
    medium_timeout_ms: int = 5000
    long_timeout_ms: int = 30000

    headless: bool = True
    launch_args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("KCC_PORT", "PORT"))

    @field_validator("site_timezone", mode="after")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        """Fail at startup rather than on the first request."""
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @field_validator("settle_ms", "short_timeout_ms", "medium_timeout_ms", "long_timeout_ms")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("durations must be >= 0")
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.site_timezone)


settings = Settings()
