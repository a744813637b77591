# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: reads YAML from disk and produces a validated, frozen GitmarkConfig.

The loading pipeline is linear:
  1. Read raw text from the file
  2. Parse as YAML into a plain dict
  3. Hand the dict to pydantic for schema validation
  4. Return the frozen config object

Any failure stops here with a clear error. A half-understood config would
silently change how every commit gets marked, which is worse than not
running at all.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from gitmark.config.exceptions import ConfigLoadError, ConfigValidationError
from gitmark.config.schema import GitmarkConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    Existence is checked up front because yaml.safe_load gives cryptic
    errors on missing files. An empty file is treated as an empty mapping,
    so it yields the all-defaults config.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't valid YAML.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Optional[Path]) -> GitmarkConfig:
    """
    Load, validate, and freeze a config file into a GitmarkConfig object.

    Passing None returns the default configuration.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations (wrong types, unknown keys, out of range).
    """
    if config_path is None:
        return GitmarkConfig()

    raw_data = _read_yaml_file(config_path)

    try:
        config = GitmarkConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err

    return config
