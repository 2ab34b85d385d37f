"""
Reading ``promowatch.yaml``.

The file is looked up as: explicit path, then ``$PROMOWATCH_CONFIG``, then
``configs/promowatch.yaml``. String values may reference the environment
as ``${VAR}`` or ``${VAR:-fallback}``, which keeps webhook URLs out of the
file itself.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AppConfig


DEFAULT_CONFIG_PATH = Path("configs/promowatch.yaml")
CONFIG_ENV_VAR = "PROMOWATCH_CONFIG"

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """The config file is missing, unreadable, or fails validation."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        super().__init__(message)
        self.path = path
        self.details = details


def _substitute_env(value: Any) -> Any:
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(
            lambda m: os.environ.get(m.group(1), m.group(2) or ""), value
        )
    if isinstance(value, dict):
        return {key: _substitute_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env(item) for item in value]
    return value


def _read_mapping(path: Path) -> dict[str, Any]:
    """Parse ``path`` as YAML; an empty document counts as ``{}``."""
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}", path=path, details=str(e)) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}", path=path, details=str(e)) from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(f"Top level of {path} must be a mapping", path=path)
    return document


def _describe_errors(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def resolve_config_path(path: Path | str | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_app_config(path: Path | str | None = None, expand_env: bool = True) -> AppConfig:
    """Build the :class:`AppConfig` for this process.

    Only the default location may be absent (defaults are used then); a
    file named explicitly or through the environment has to exist.

    Raises:
        ConfigError: the file cannot be used
    """
    config_path = resolve_config_path(path)
    if not config_path.exists() and path is None and CONFIG_ENV_VAR not in os.environ:
        return AppConfig()

    data = _read_mapping(config_path)
    if expand_env:
        data = _substitute_env(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}",
            path=config_path,
            details="\n".join(_describe_errors(e)),
        ) from e


def validate_config_file(path: Path | str) -> list[str]:
    """Check a config file and return readable problems, ``[]`` when it is fine."""
    try:
        AppConfig.model_validate(_substitute_env(_read_mapping(Path(path))))
    except ConfigError as e:
        return [str(e)]
    except ValidationError as e:
        return _describe_errors(e)
    return []
