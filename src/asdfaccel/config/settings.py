"""Configuration settings for asdf-accelerate.

This module defines a Pydantic ``BaseSettings`` model read from environment
variables with the ``ASDF_ACCEL_`` prefix (case-insensitive) and from a
``.env`` file. Command-line flags override these values.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from asdfaccel.registry.asdf_cli import default_data_dir


class AcceleratorSettings(BaseSettings):
    """Settings for sync runs and the asdf adapter.

    Notes:
    - ``jobs`` is range-checked by the scheduler, not here, so that a bad
      value surfaces as ``InvalidConcurrencyError`` like the ``--jobs`` flag.
    - ``asdf_data_dir`` defaults to ``$ASDF_DATA_DIR`` or ``~/.asdf``.
    """

    asdf_bin: str = Field(default="asdf", description="asdf executable name or path")
    asdf_data_dir: Path = Field(
        default_factory=default_data_dir, description="asdf data directory"
    )

    jobs: Optional[int] = Field(
        default=None, description="Parallel sync workers (default: CPU count)"
    )
    task_timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-plugin sync timeout in seconds"
    )
    network_retries: int = Field(
        default=2, ge=0, le=10, description="Retries for network failures per plugin"
    )

    log_level: str = Field(default="INFO", description="Log level for asdfaccel loggers")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the log level name.

        Raises:
            ValueError: If the level is not a standard logging level name.
        """
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    model_config = {
        "env_file": ".env",
        "env_prefix": "ASDF_ACCEL_",
        "case_sensitive": False,
        "validate_assignment": True,
        "extra": "ignore",
    }
