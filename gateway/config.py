"""
Gateway configuration.

Sources, lowest to highest precedence:

1. NiraConfig field defaults
2. ``<NIRA_HOME>/config.yaml``
3. environment variables (``<NIRA_HOME>/.env`` and a project ``.env`` are
   loaded first, never overriding variables that are already set)
4. keyword overrides passed to load_config() (CLI flags)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from nira_constants import (
    DEFAULT_HOST,
    DEFAULT_MODEL,
    DEFAULT_OLLAMA_ENDPOINT,
    DEFAULT_PORT,
    MAX_TOOL_ROUNDS,
    get_nira_home,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# environment variable -> NiraConfig field
ENV_VARS: Dict[str, str] = {
    "NIRA_OLLAMA_ENDPOINT": "ollama_endpoint",
    "NIRA_MODEL": "model",
    "NIRA_DB_PATH": "database_path",
    "NIRA_HOST": "host",
    "NIRA_PORT": "port",
    "NIRA_ALLOWED_PATHS": "allowed_paths",
    "NIRA_MAX_TOOL_ROUNDS": "max_tool_rounds",
    "NIRA_LOG_LEVEL": "log_level",
    "NIRA_LOG_DIR": "log_dir",
    "NIRA_WEB_SEARCH": "enable_web_search",
}


class ConfigError(Exception):
    """Raised when a configuration source is unreadable or holds invalid values."""


class NiraConfig(BaseModel):
    ollama_endpoint: str = DEFAULT_OLLAMA_ENDPOINT
    model: str = DEFAULT_MODEL
    database_path: str = Field(default_factory=lambda: str(get_nira_home() / "nira.db"))
    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    # Seeds the allow-list only while its table is empty
    allowed_paths: List[str] = Field(default_factory=list)
    max_tool_rounds: int = Field(MAX_TOOL_ROUNDS, ge=1)
    request_timeout: float = Field(120.0, gt=0)
    # Stored turns re-loaded into a new connection; 0 disables
    history_limit: int = Field(20, ge=0)
    log_level: str = "INFO"
    log_dir: Optional[str] = Field(default_factory=lambda: str(get_nira_home() / "logs"))
    enable_web_search: bool = True

    @field_validator("allowed_paths", mode="before")
    @classmethod
    def _split_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [p for p in value.split(os.pathsep) if p.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level


def _load_env_files(home: Path) -> None:
    env_path = home / ".env"
    if env_path.exists():
        try:
            load_dotenv(env_path, encoding="utf-8", override=False)
        except UnicodeDecodeError:
            load_dotenv(env_path, encoding="latin-1", override=False)
    # Also try project .env as fallback
    load_dotenv(override=False)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    known = {k: v for k, v in data.items() if k in NiraConfig.model_fields}
    for key in data.keys() - known.keys():
        logger.warning("Ignoring unknown key %r in %s", key, path)
    return known


def _validate(values: Dict[str, Any], source: str) -> NiraConfig:
    try:
        return NiraConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration from {source}: {e}") from e


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    *,
    load_env_files: bool = True,
    **overrides: Any,
) -> NiraConfig:
    """Resolve the effective configuration.

    Args:
        config_path: YAML file to read instead of ``<NIRA_HOME>/config.yaml``.
        load_env_files: Load ``.env`` files into the environment first.
        **overrides: Field values that beat every other source; None is ignored.

    Raises:
        ConfigError: naming the source (file, environment, overrides) that
            failed to parse or validate.
    """
    home = get_nira_home()
    if load_env_files:
        _load_env_files(home)

    values: Dict[str, Any] = {}
    path = Path(config_path) if config_path else home / "config.yaml"
    if path.exists():
        values.update(_read_yaml(path))
        _validate(values, str(path))
    elif config_path:
        raise ConfigError(f"config file not found: {path}")

    for var, field in ENV_VARS.items():
        raw = os.environ.get(var)
        if raw is not None and raw != "":
            values[field] = raw
    _validate(values, "environment")

    unknown = [k for k in overrides if k not in NiraConfig.model_fields]
    if unknown:
        raise ConfigError(f"unknown configuration option(s): {', '.join(sorted(unknown))}")
    values.update({k: v for k, v in overrides.items() if v is not None})
    return _validate(values, "overrides")
