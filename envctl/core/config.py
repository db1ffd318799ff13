"""Runtime configuration for envctl.

Settings come from the process environment first and then from an optional
``config.env`` file inside the config directory. The file is read with
``dotenv_values`` so the tool's own environment is left untouched.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_DIRNAME = ".envctl"
CONFIG_FILENAME = "config.env"
DEFAULT_ORPHAN_GRACE_SECONDS = 300


class EnvctlConfig(BaseModel):
    config_dir: Path = Field(default_factory=lambda: Path.home() / DEFAULT_CONFIG_DIRNAME)
    orphan_grace_seconds: float = Field(default=DEFAULT_ORPHAN_GRACE_SECONDS, ge=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def profiles_dir(self) -> Path:
        return self.config_dir / "profiles"

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvctlConfig":
        """
        Build the configuration from environment variables and config.env.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests)

        Returns:
            EnvctlConfig instance

        Raises:
            pydantic.ValidationError: If a setting has an invalid value
        """
        env = os.environ if environ is None else environ

        home = env.get("ENVCTL_HOME")
        config_dir = Path(home).expanduser() if home else Path.home() / DEFAULT_CONFIG_DIRNAME

        file_values: dict[str, Optional[str]] = {}
        config_file = config_dir / CONFIG_FILENAME
        if config_file.is_file():
            file_values = dotenv_values(config_file)

        def setting(name: str) -> Optional[str]:
            value = env.get(name)
            if value is None:
                value = file_values.get(name)
            return value or None

        data: dict[str, object] = {"config_dir": config_dir}
        grace = setting("ENVCTL_ORPHAN_GRACE_SECONDS")
        if grace is not None:
            data["orphan_grace_seconds"] = grace
        level = setting("ENVCTL_LOG_LEVEL")
        if level is not None:
            data["log_level"] = level

        return cls.model_validate(data)
