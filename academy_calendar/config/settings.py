"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without a Snowflake account.
"""

from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.scheduling.models import GridWindow


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Academy Calendar API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Comma-separated API keys. Using a list enables key rotation without downtime."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_database: str = Field(
        default="ACADEMY",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="SCHEDULING",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Calendar Grid
    calendar_start_hour: int = Field(
        default=8,
        description="First hour shown on the day grid (0-23)"
    )
    calendar_end_hour: int = Field(
        default=21,
        description="Last hour shown on the day grid (1-24)"
    )
    calendar_pixels_per_hour: float = Field(
        default=80,
        description="Vertical pixels per hour of the day grid"
    )
    calendar_min_event_height_px: float = Field(
        default=40,
        description="Minimum block height so short classes stay clickable"
    )
    calendar_timezone: str = Field(
        default="UTC",
        description="IANA timezone the calendar is displayed in. Aware timestamps are converted to it."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def display_timezone(self) -> ZoneInfo:
        return ZoneInfo(self.calendar_timezone)

    def grid_window(
        self,
        start_hour: Optional[int] = None,
        end_hour: Optional[int] = None,
        pixels_per_hour: Optional[float] = None,
    ) -> GridWindow:
        """
        Build the grid window from settings, with optional per-request overrides.

        Raises ValueError if the resulting window is invalid.
        """
        return GridWindow(
            start_hour=self.calendar_start_hour if start_hour is None else start_hour,
            end_hour=self.calendar_end_hour if end_hour is None else end_hour,
            pixels_per_hour=self.calendar_pixels_per_hour if pixels_per_hour is None else pixels_per_hour,
            min_height_px=self.calendar_min_event_height_px,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing or invalid fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        # Snowflake only required if not in mock mode
        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            # Need either password or private key
            if not self.snowflake_password and not self.snowflake_private_key_path:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        try:
            self.grid_window()
        except ValueError:
            missing.append("CALENDAR_START_HOUR / CALENDAR_END_HOUR / CALENDAR_PIXELS_PER_HOUR")

        try:
            self.display_timezone
        except (ValueError, KeyError):
            missing.append("CALENDAR_TIMEZONE")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
