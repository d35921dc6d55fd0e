"""Configuration management for matchsim."""

from pathlib import Path

from platformdirs import user_config_dir
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchsimConfig(BaseSettings):
    """Configuration settings for matchsim."""

    # Simulation settings
    trial_count: int = Field(
        default=10_000,
        description="Number of Monte Carlo trials per simulation",
        alias="MATCHSIM_TRIALS",
    )

    seed: int | None = Field(
        default=None,
        description="Seed for the trial random source; unset draws fresh entropy",
        alias="MATCHSIM_SEED",
    )

    # Progress and logging
    verbose: bool = Field(
        default=True,
        description="Print progress messages to stderr from the command line",
        alias="MATCHSIM_VERBOSE",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level used by the command line",
        alias="MATCHSIM_LOG_LEVEL",
    )

    # Collaborator settings
    api_key: str | None = Field(
        default=None,
        description="API key for the Gemini data and commentary collaborators",
        alias="MATCHSIM_API_KEY",
    )

    timeout: int = Field(
        default=60,
        description="Default request timeout in seconds for the Gemini collaborators",
        alias="MATCHSIM_TIMEOUT",
    )

    config_dir: Path = Field(
        default_factory=lambda: Path(user_config_dir("matchsim")),
        description="Directory searched for matchsim.yaml",
        alias="MATCHSIM_CONFIG_DIR",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Global configuration instance
config = MatchsimConfig()


def get_config() -> MatchsimConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> None:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            raise ValueError(f"Unknown configuration option: {key}")


def reset_config() -> None:
    """Reset configuration to defaults."""
    global config
    config = MatchsimConfig()
