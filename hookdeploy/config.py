"""Server configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from hookdeploy.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9000
DEFAULT_DEPLOY_SCRIPT = "/opt/deploy/deploy.sh"
# GitHub caps webhook payloads at 25 MB.
DEFAULT_MAX_BODY_BYTES = 25 * 1024 * 1024

# Environment variable -> config field.
_ENV_FIELDS: dict[str, str] = {
    "WEBHOOK_SECRET": "webhook_secret",
    "HOST": "host",
    "PORT": "port",
    "DEPLOY_SCRIPT": "deploy_script",
    "DEPLOY_TIMEOUT": "deploy_timeout",
    "MAX_BODY_BYTES": "max_body_bytes",
    "LOG_LEVEL": "log_level",
    "LOG_DIR": "log_dir",
}
_FIELD_ENV = {field: env for env, field in _ENV_FIELDS.items()}

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServerConfig(BaseModel):
    """Immutable settings for the webhook server, read once at startup."""

    model_config = ConfigDict(frozen=True)

    webhook_secret: SecretStr
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    deploy_script: Path = Path(DEFAULT_DEPLOY_SCRIPT)
    deploy_timeout: float | None = Field(default=None, gt=0)
    max_body_bytes: int = Field(default=DEFAULT_MAX_BODY_BYTES, gt=0)
    log_level: LogLevel = "INFO"
    log_dir: Path | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("port")
    @classmethod
    def check_listen_port(cls, value: int, info: ValidationInfo) -> int:
        # Port 0 (ephemeral) is only for servers built in-process.
        if value == 0 and info.context and info.context.get("listen"):
            msg = "must be between 1 and 65535"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerConfig:
        """Build the config from *environ* (defaults to ``os.environ``).

        Empty optional variables count as unset.  Raises `ConfigError` when
        ``WEBHOOK_SECRET`` is missing or any value fails validation.
        """
        env = os.environ if environ is None else environ

        if not env.get("WEBHOOK_SECRET", ""):
            msg = "WEBHOOK_SECRET environment variable required"
            raise ConfigError(msg)

        data: dict[str, str] = {}
        for name, field in _ENV_FIELDS.items():
            value = env.get(name, "").strip() if name != "WEBHOOK_SECRET" else env[name]
            if value:
                data[field] = value

        try:
            config = cls.model_validate(data, context={"listen": True})
        except ValidationError as exc:
            raise ConfigError(_describe_validation_error(exc)) from exc

        logger.debug(
            "Config loaded: host=%s port=%d script=%s timeout=%s",
            config.host,
            config.port,
            config.deploy_script,
            config.deploy_timeout,
        )
        return config

    @property
    def log_level_number(self) -> int:
        """Numeric level for ``log_level``."""
        return logging.getLevelNamesMapping()[self.log_level]


def _describe_validation_error(exc: ValidationError) -> str:
    """Name the offending environment variables without echoing their values."""
    problems: list[str] = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else ""
        env_name = _FIELD_ENV.get(field, field)
        problems.append(f"{env_name}: {error['msg']}")
    return "Invalid configuration: " + "; ".join(problems)
