"""
Pydantic models for application configuration.
Provides robust validation for all settings.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PollPolicy(BaseModel):
    """
    Controls how often a registering token is polled.

    `max_attempts=None` polls until the server changes the state, however long
    that takes. `interval=0` polls back to back.
    """

    model_config = ConfigDict(frozen=True)

    interval: float = 1.0
    backoff: float = 1.0
    max_interval: float = 30.0
    max_attempts: Optional[int] = None

    @field_validator("interval", "max_interval")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Poll intervals cannot be negative.")
        return v

    @field_validator("backoff")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Poll backoff must be at least 1.0.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: Optional[int]) -> Optional[int]:
        # 0 in the INI file means "no limit"
        if v is not None and v <= 0:
            return None
        return v

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before poll number `attempt` (1-based)."""
        if self.interval == 0:
            return 0.0
        try:
            delay = self.interval * (self.backoff ** (attempt - 1))
        except OverflowError:
            # Long unbounded waits push the exponent past float range
            return self.max_interval
        return min(self.max_interval, delay)


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Server & credentials
    base_url: str
    access_key: str = ""
    secret_key: str = Field(default="", repr=False)
    verify_ssl: bool = True

    # Download settings
    output_dir: str = "."
    request_timeout: float = 60.0

    # Token polling
    poll_interval: float = 1.0
    poll_backoff: float = 1.0
    poll_max_interval: float = 30.0
    poll_max_attempts: int = 0

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the server URL is absolute and strips any trailing slash."""
        if not v:
            raise ValueError("Base URL cannot be empty.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @field_validator("request_timeout", "poll_interval", "poll_max_interval")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Timeouts and intervals cannot be negative.")
        return v

    @field_validator("poll_backoff")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Poll backoff must be at least 1.0.")
        return v

    @model_validator(mode="after")
    def validate_key_pair(self) -> "AppConfig":
        """An access key without its secret (or the reverse) is a typo, not a choice."""
        if bool(self.access_key) != bool(self.secret_key):
            raise ValueError(
                "API key pair is incomplete. Set both 'access_key' and 'secret_key'."
            )
        return self

    @property
    def poll_policy(self) -> PollPolicy:
        return PollPolicy(
            interval=self.poll_interval,
            backoff=self.poll_backoff,
            max_interval=self.poll_max_interval,
            max_attempts=self.poll_max_attempts or None,
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
