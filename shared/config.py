"""SDK configuration with startup validation.

All config is validated at import time via pydantic-settings.
Unknown stream identifiers or a production environment without app
credentials cause an immediate, clear error.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Streams the SDK knows how to upload, mapped to their log endpoint.
SLEEP_STREAMS = frozenset({"sleep"})
MOVEMENT_STREAMS = frozenset(
    {
        "step_count",
        "floor_count",
        "move_time",
        "stand_time",
        "exercise_time",
        "active_energy_burned",
        "basal_energy_burned",
        "exercise",
        "heart_rate",
        "resting_heart_rate",
        "walking_heart_rate_average",
        "heart_rate_variability_sdnn",
    }
)
KNOWN_STREAMS = SLEEP_STREAMS | MOVEMENT_STREAMS

_BASE_URLS = {
    "sandbox": "https://sandbox-api.sahha.ai/api/",
    "production": "https://api.sahha.ai/api/",
}


class Settings(BaseSettings):
    model_config = {"env_prefix": "HS_", "env_file": ".env"}

    # Environment: "sandbox" or "production"
    environment: Literal["sandbox", "production"] = "sandbox"

    # Host framework identifier, reported as sdkId (e.g. "ios_swift", "flutter")
    framework_id: str = "python"

    # Sync behaviour
    enabled_streams: set[str] = {"sleep", "step_count"}
    manual_post_mode: bool = False
    chunk_size: int = 1000
    lookback_days: int = 7

    # App credentials (refresh endpoint only)
    app_id: str = ""
    app_secret: str = ""

    # Identity reported with diagnostics
    app_version: str = "0"
    sdk_version: str = "1.0.0"
    device_id: str = ""
    device_type: str = "unknown"
    device_model: str = "unknown"
    system: str = "unknown"
    system_version: str = "unknown"

    # Local state
    state_db_url: str = "sqlite+aiosqlite:///healthsync_state.db"

    # HTTP
    request_timeout_seconds: float = 30.0

    # Error reporting
    error_report_max_in_flight: int = 16

    # Logging: JSON lines for log shipping, console renderer otherwise
    log_json: bool = False

    @property
    def api_base_url(self) -> str:
        return _BASE_URLS[self.environment]

    @model_validator(mode="after")
    def validate_streams_and_secrets(self) -> "Settings":
        """Fail fast at startup on unknown streams or missing production credentials."""
        unknown = sorted(self.enabled_streams - KNOWN_STREAMS)
        if unknown:
            raise ValueError(
                f"Unsupported stream(s): {', '.join(unknown)}. "
                f"Must be one of: {', '.join(sorted(KNOWN_STREAMS))}"
            )
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if self.environment == "production":
            missing = []
            if not self.app_id:
                missing.append("HS_APP_ID")
            if not self.app_secret:
                missing.append("HS_APP_SECRET")
            if missing:
                raise ValueError(
                    f"environment='production' requires app credentials. "
                    f"Missing: {', '.join(missing)}"
                )
        return self


settings = Settings()
