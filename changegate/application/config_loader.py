"""Layered YAML configuration.

Layers, lowest precedence first:
  1. built-in defaults (ChangeGateConfig())
  2. user:    <user_home>/.changegate/config.yml
  3. project: <project_root>/.changegate/config.yml

Nested mappings merge key by key, so a project file can override a single
check command and inherit the rest. Lists and scalars are replaced whole.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from changegate.application.config_models import ChangeGateConfig
from changegate.domain.constants import CONFIG_DIRNAME, CONFIG_FILENAME
from changegate.domain.errors import ChangeGateError


class ConfigLoadError(ChangeGateError):
    """A config file exists but cannot be used."""

    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        return self.message if self.path is None else f"{self.message}: {self.path}"


def config_path(base: Path) -> Path:
    return base / CONFIG_DIRNAME / CONFIG_FILENAME


def merge_layers(lower: dict[str, Any], upper: dict[str, Any]) -> dict[str, Any]:
    result = dict(lower)
    for key, value in upper.items():
        below = result.get(key)
        result[key] = (
            merge_layers(below, value)
            if isinstance(below, dict) and isinstance(value, dict)
            else value
        )
    return result


def read_layer(path: Path) -> dict[str, Any]:
    """Parse one config file. A missing or empty file is an empty layer.

    Raises:
        ConfigLoadError: If the file is unreadable, not YAML, or not a mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigLoadError("Failed to read config file", path=path, cause=e) from e

    try:
        layer = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError("Malformed YAML", path=path, cause=e) from e

    if layer is None:
        return {}
    if not isinstance(layer, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)
    return layer


def load_config(*, project_root: Path | None = None, user_home: Path | None = None) -> ChangeGateConfig:
    """Merge the user and project files over the defaults and validate the result.

    Raises:
        ConfigLoadError: On unreadable or malformed YAML, or invalid settings
    """
    project_file = config_path(project_root or Path.cwd())
    user_file = config_path(user_home or Path.home())

    merged = ChangeGateConfig().model_dump()
    for path in (user_file, project_file):
        merged = merge_layers(merged, read_layer(path))

    try:
        return ChangeGateConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigLoadError("Invalid configuration", path=project_file, cause=e) from e
