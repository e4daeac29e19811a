"""Task configuration: wait bounds plus pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from tfstate_lease.core.exceptions import ConfigError

MAX_WAIT_TIME_SECONDS_MIN = 60
MAX_WAIT_TIME_SECONDS_MAX = 7200
MAX_WAIT_TIME_SECONDS_DEFAULT = 1800

POLL_INTERVAL_SECONDS_MIN = 10
POLL_INTERVAL_SECONDS_MAX = 300
POLL_INTERVAL_SECONDS_DEFAULT = 30

# field name -> (task input name, min, max)
_INPUT_BOUNDS: dict[str, tuple[str, int, int]] = {
    "max_wait_time_seconds": ("maxWaitTimeSeconds", MAX_WAIT_TIME_SECONDS_MIN, MAX_WAIT_TIME_SECONDS_MAX),
    "poll_interval_seconds": ("pollIntervalSeconds", POLL_INTERVAL_SECONDS_MIN, POLL_INTERVAL_SECONDS_MAX),
}


class WaitConfig(BaseModel):
    """Polling budget for the lease waiter. Both bounds inclusive."""

    model_config = ConfigDict(frozen=True)

    max_wait_time_seconds: int = Field(
        default=MAX_WAIT_TIME_SECONDS_DEFAULT,
        ge=MAX_WAIT_TIME_SECONDS_MIN,
        le=MAX_WAIT_TIME_SECONDS_MAX,
    )
    poll_interval_seconds: int = Field(
        default=POLL_INTERVAL_SECONDS_DEFAULT,
        ge=POLL_INTERVAL_SECONDS_MIN,
        le=POLL_INTERVAL_SECONDS_MAX,
    )

    @field_validator("max_wait_time_seconds", "poll_interval_seconds", mode="before")
    @classmethod
    def _coerce_input(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("expected an integer, received a boolean")
        if isinstance(value, str):
            return value.strip()
        return value

    @classmethod
    def from_inputs(cls, max_wait_time_seconds: Any = None, poll_interval_seconds: Any = None) -> WaitConfig:
        """Build from raw task inputs; None or blank falls back to the defaults.

        Raises:
            ConfigError: naming the first offending input and its allowed range.
        """
        raw: dict[str, Any] = {}
        for name, value in (
            ("max_wait_time_seconds", max_wait_time_seconds),
            ("poll_interval_seconds", poll_interval_seconds),
        ):
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            raw[name] = value
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            error = exc.errors()[0]
            input_name, low, high = _INPUT_BOUNDS[str(error["loc"][0])]
            raise ConfigError(
                f"For {input_name} -> {error['msg']} | "
                f"{input_name} must be an integer between {low} and {high}."
            ) from exc


class StorageConfig(BaseSettings):
    """Azure Blob Storage client configuration."""

    model_config = {"env_prefix": "TFLEASE_STORAGE_"}

    endpoint_suffix: str = "blob.core.windows.net"
    account_url_template: str | None = None  # e.g. "http://127.0.0.1:10000/{account}" for Azurite
    retry_total: int = 3
    retry_initial_backoff: int = 2
    retry_increment_base: int = 2
    connection_timeout: int = 20
    read_timeout: int = 30

    def account_url(self, storage_account_name: str) -> str:
        if self.account_url_template:
            return self.account_url_template.format(account=storage_account_name)
        return f"https://{storage_account_name}.{self.endpoint_suffix}"


class LoggingConfig(BaseSettings):
    """structlog output configuration."""

    model_config = {"env_prefix": "TFLEASE_LOG_"}

    level: str = "INFO"
    render_json: bool = False


class AppSettings(BaseSettings):
    """Root settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TFLEASE_"}

    # Replays a fixed lock status instead of calling Azure (pipeline smoke tests).
    dry_run_status: Literal["UNLOCKED", "LOCKED", "NOT_FOUND"] | None = None

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
