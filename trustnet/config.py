"""
Configuration management for trustnet simulations.
"""
import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trustnet.nodes.malicious import ADVERSARIES


class Settings(BaseSettings):
    """Simulation defaults loaded from ``TRUSTNET_*`` environment variables."""

    # Network shape
    num_nodes: int = Field(default=100, ge=1)
    num_transactions: int = Field(default=500, ge=0)

    # Adversary strategy used for malicious nodes
    adversary: str = "send_one_tx"

    # Reproducibility
    seed: Optional[int] = None

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # Output Configuration
    output_dir: Path = Path("./results/simulation")
    plot_enabled: bool = True

    @field_validator("adversary")
    @classmethod
    def validate_adversary(cls, v):
        """Validate the adversary is a registered strategy."""
        if v not in ADVERSARIES:
            raise ValueError(f"adversary must be one of {sorted(ADVERSARIES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalise and validate the log level name."""
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TRUSTNET_",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    return Settings()
