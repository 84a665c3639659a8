from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library defaults loaded from environment variables.

    All settings can be configured via ``BURSTLIMIT_*`` environment variables
    or a .env file. They only provide defaults: a ``RateLimiterConfig`` passed
    explicitly to a limiter always wins.
    """

    # Rate limiter defaults
    time_period: float = 3600.0  # seconds covered by the rolling window
    request_limit: int = 4896  # requests allowed per time period
    bucket_count: int = 12  # slices of the rolling window
    mode: Literal["naive", "burst"] = "burst"
    minimum_burst_per_bucket: Optional[float] = None  # default L / (12 * N)
    rate_limitation_speed: Optional[float] = None  # requests/sec while limiting

    # History of discarded buckets (diagnostics)
    history_enabled: bool = False
    history_max_entries: int = 1000

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("time_period")
    @classmethod
    def validate_time_period_positive(cls, v: float) -> float:
        """Validate the time period is positive."""
        if v <= 0:
            raise ValueError("time_period must be positive")
        return v

    @field_validator("request_limit", "bucket_count", "history_max_entries")
    @classmethod
    def validate_counts_positive(cls, v: int) -> int:
        """Validate count values are positive."""
        if v < 1:
            raise ValueError("count values must be at least 1")
        return v

    @field_validator("rate_limitation_speed")
    @classmethod
    def validate_speed_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("rate_limitation_speed must be positive")
        return v

    @field_validator("minimum_burst_per_bucket")
    @classmethod
    def validate_burst_not_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("minimum_burst_per_bucket must not be negative")
        return v

    model_config = SettingsConfigDict(
        env_prefix="BURSTLIMIT_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()
