"""
Configuration loader for the stack config file.

The config is looked up in the project directory under a fixed set of file
names and parsed as JSON or YAML depending on the suffix.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import StackConfig

logger = logging.getLogger(__name__)

STACK_DIR = ".stack"
CONFIG_FILENAMES = (
    f"{STACK_DIR}/stack.config.json",
    "stack.config.json",
    "stack.config.yaml",
    "stack.config.yml",
)


def find_config_file(directory: Union[str, Path]) -> Optional[Path]:
    """Find the stack config in ``directory``, or None if there is none."""
    base = Path(directory)
    for filename in CONFIG_FILENAMES:
        candidate = base / filename
        if candidate.is_file():
            return candidate
    return None


def _read_raw(path: Path) -> Any:
    content = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        return yaml.safe_load(content)
    return json.loads(content)


def load_config(path: Union[str, Path]) -> StackConfig:
    """
    Load and validate a stack config file.

    Args:
        path: Path to a JSON or YAML stack config

    Returns:
        Validated StackConfig

    Raises:
        ConfigError: If the file is missing, unparseable or invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}",
            config_path=str(config_path),
            error_code="CONFIG_NOT_FOUND",
            recovery_suggestion="Create a stack config or pass --config",
        )

    try:
        raw = _read_raw(config_path)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Invalid syntax in config file: {e}",
            config_path=str(config_path),
            cause=e,
        ) from e

    if not isinstance(raw, dict):
        raise ConfigError(
            "Config file must contain a mapping at the top level",
            config_path=str(config_path),
        )

    try:
        config = StackConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(
            f"Configuration validation failed: {e}",
            config_path=str(config_path),
            cause=e,
        ) from e

    logger.debug(f"Loaded config for project '{config.project.name}' from {config_path}")
    return config


def load_config_from_dir(directory: Union[str, Path]) -> StackConfig:
    """Locate and load the stack config in ``directory``."""
    config_path = find_config_file(directory)
    if config_path is None:
        raise ConfigError(
            f"No config file found in {directory}. "
            f"Expected one of: {', '.join(CONFIG_FILENAMES)}",
            error_code="CONFIG_NOT_FOUND",
        )
    return load_config(config_path)
