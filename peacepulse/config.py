"""
Runtime configuration for PeacePulse.

Settings are read from environment variables; command-line options override
them where the CLI exposes an equivalent.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from .assistant import DEFAULT_MODEL, DEFAULT_TIMEOUT

ENV_PREFIX = "PEACEPULSE_"


def default_data_dir() -> Path:
    return Path.home() / ".config" / "peacepulse"


class Settings(BaseModel):
    """Application settings."""

    gemini_api_key: str | None = Field(None, description="Generative Language API key")
    gemini_model: str = DEFAULT_MODEL
    request_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    data_dir: Path = Field(default_factory=default_data_dir)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Variables to read, defaults to ``os.environ``

        Returns:
            Settings with unset or unparsable values left at their defaults
        """
        env = os.environ if environ is None else environ
        settings = cls()

        api_key = env.get(f"{ENV_PREFIX}GEMINI_API_KEY") or env.get("GEMINI_API_KEY")
        if api_key:
            settings.gemini_api_key = api_key
        if model := env.get(f"{ENV_PREFIX}GEMINI_MODEL"):
            settings.gemini_model = model
        if data_dir := env.get(f"{ENV_PREFIX}DATA_DIR"):
            settings.data_dir = Path(data_dir).expanduser()
        if log_level := env.get(f"{ENV_PREFIX}LOG_LEVEL"):
            settings.log_level = log_level.upper()

        timeout = env.get(f"{ENV_PREFIX}REQUEST_TIMEOUT")
        if timeout:
            try:
                value = float(timeout)
            except ValueError:
                value = 0
            if value > 0:
                settings.request_timeout = value

        return settings


def configure_logging(level: str) -> None:
    """Configure root logging once for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
