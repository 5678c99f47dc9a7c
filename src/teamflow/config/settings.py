"""Configuration and settings management using pydantic-settings."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    """Application settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_prefix="TEAMFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core settings
    env: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Log level")

    # Workflow editing
    default_workflow_name: str = Field(
        default="My AI Team",
        description="Name given to workflows created without one",
    )
    strict_agent_types: bool = Field(
        default=False,
        description=(
            "Reject unknown agent types when building default configurations "
            "instead of falling back to the social-shaped default"
        ),
    )

    # Execution engine
    node_timeout_s: float = Field(
        default=120.0,
        description="Per-node capability timeout in seconds (0 disables)",
    )

    # Remote capability backend
    capability_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        description="Base URL of the agent capability backend",
    )
    capability_timeout_s: float = Field(
        default=60.0,
        description="HTTP timeout for remote capability calls in seconds",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("node_timeout_s", "capability_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate that timeouts are not negative."""
        if v < 0:
            raise ValueError("timeouts must not be negative")
        return v

    @property
    def node_timeout(self) -> float | None:
        """Per-node timeout, or None when disabled."""
        return self.node_timeout_s or None


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
