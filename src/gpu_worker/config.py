"""
Service configuration.

Environment variables:
    HOST                  -> host (default 0.0.0.0)
    PORT                  -> port (default 8080)
    WORKERS               -> workers (default 1)
    LOG_LEVEL             -> log_level (default info)
    GPU_POWER_PREFERENCE  -> power_preference (default high-performance)
    BLUR_RADIUS           -> blur_radius (default 5.0)

Example:
    config = ServiceConfig.from_env()
    print(config.port)
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .transforms.blur import DEFAULT_BLUR_RADIUS, MAX_BLUR_RADIUS

logger = logging.getLogger(__name__)

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")
POWER_PREFERENCES = ("high-performance", "low-power")

_ENV_FIELDS = {
    "HOST": "host",
    "PORT": "port",
    "WORKERS": "workers",
    "LOG_LEVEL": "log_level",
    "GPU_POWER_PREFERENCE": "power_preference",
    "BLUR_RADIUS": "blur_radius",
}


class ServiceConfig(BaseModel):
    """Runtime configuration of the GPU worker."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Listen port")
    workers: int = Field(default=1, ge=1, description="Server worker processes")
    log_level: str = Field(default="info", description="Log level name")
    power_preference: str = Field(
        default="high-performance",
        description="Adapter power preference: 'high-performance' or 'low-power'",
    )
    blur_radius: float = Field(
        default=DEFAULT_BLUR_RADIUS,
        ge=0,
        le=MAX_BLUR_RADIUS,
        description="Blur radius used when a request gives none",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return value

    @field_validator("power_preference")
    @classmethod
    def _check_power_preference(cls, value: str) -> str:
        value = value.lower()
        if value not in POWER_PREFERENCES:
            raise ValueError(f"must be one of {', '.join(POWER_PREFERENCES)}")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        """
        Build the configuration from environment variables.

        Unset or empty variables fall back to the defaults.

        Raises:
            ConfigError: If a variable doesn't parse or is out of range
        """
        environ = os.environ if environ is None else environ
        values = {
            field_name: environ[env_name]
            for env_name, field_name in _ENV_FIELDS.items()
            if environ.get(env_name)
        }

        try:
            config = cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{_env_name(error['loc'][0])}: {error['msg']}" for error in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e

        logger.debug("Loaded configuration: %s", config)
        return config

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())


def _env_name(field_name) -> str:
    for env_name, name in _ENV_FIELDS.items():
        if name == field_name:
            return env_name
    return str(field_name)
