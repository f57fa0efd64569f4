"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

BRACKET_SIZES = (4, 8, 16, 32)


def parse_id_list(value: str) -> frozenset[str]:
    """Parse a comma-separated id list into a set."""
    return frozenset(part.strip() for part in value.split(",") if part.strip())


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    app_host: str = "0.0.0.0"
    app_port: int = 5000
    uvicorn_workers: int = Field(
        default=1,
        ge=1,
        description="Server worker processes (more than one requires redis_url)",
    )

    # Endpoints
    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL for the tournament HTTP API",
    )
    ws_url: str = Field(
        default="ws://localhost:5000/ws",
        description="Realtime channel URL",
    )
    http_timeout: float = 10.0

    # Realtime channel
    reconnect_base_delay: float = Field(
        default=1.0,
        description="First reconnect delay in seconds, doubled per failed attempt",
    )
    reconnect_max_delay: float = Field(
        default=30.0,
        description="Upper bound for the reconnect delay in seconds",
    )
    auth_timeout_seconds: float = Field(
        default=5.0,
        description="Server waits this long for the auth frame before closing",
    )

    # Tournament sync
    save_debounce_seconds: float = Field(
        default=1.0,
        description="Quiet window after the last admin edit before persisting",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        description="Viewer snapshot poll interval",
    )
    default_bracket_size: int = 8
    tournament_key: str = "tournament"

    # Persistence (in-memory store when unset)
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL for the snapshot store (optional)",
    )

    # Admin allow-lists. The tournament page and the admin panel carry
    # separate lists; they are not merged.
    tournament_admin_ids: str = Field(
        default="",
        description="Comma-separated external ids allowed to edit the bracket",
    )
    panel_admin_ids: str = Field(
        default="",
        description="Comma-separated external ids allowed into the admin panel",
    )

    @field_validator("default_bracket_size")
    @classmethod
    def validate_default_bracket_size(cls, v: int) -> int:
        """Validate default bracket size."""
        if v not in BRACKET_SIZES:
            raise ValueError(
                f"default_bracket_size must be one of {list(BRACKET_SIZES)}"
            )
        return v

    @field_validator("reconnect_base_delay", "save_debounce_seconds", "poll_interval_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Timers must be positive."""
        if v <= 0:
            raise ValueError("timer intervals must be positive")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError(
                "reconnect_max_delay must be >= reconnect_base_delay"
            )

        if self.app_env == "production" and self.log_level == "DEBUG":
            import warnings
            warnings.warn(
                "DEBUG log level in production may expose sensitive information"
            )

        return self

    @property
    def tournament_admins(self) -> frozenset[str]:
        return parse_id_list(self.tournament_admin_ids)

    @property
    def panel_admins(self) -> frozenset[str]:
        return parse_id_list(self.panel_admin_ids)

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
