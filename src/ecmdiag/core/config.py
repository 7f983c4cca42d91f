"""Application configuration using pydantic-settings."""

import logging
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables
    prefixed with ECMDIAG_ (e.g., ECMDIAG_SERIAL_PORT).
    """

    serial_port: str = "/dev/rfcomm0"
    serial_baud: int = 9600
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    request_timeout: float = 1.0
    poll_interval: float = 0.01
    transfer_chunk: int = 16
    dictionary_path: str | None = None

    model_config = SettingsConfigDict(env_prefix="ECMDIAG_")

    @property
    def dictionary_file(self) -> Path | None:
        """Path to a user supplied dictionary, or None for the packaged one."""
        return Path(self.dictionary_path) if self.dictionary_path else None


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
