# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Custom exceptions for the configuration system.

Kept apart from the rest of the error taxonomy so the CLI can map config
failures to their own exit code without importing the marking machinery.
"""

from gitmark.core.exceptions import GitmarkError


class ConfigError(GitmarkError):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a config file parses fine but fails schema validation.
    This covers missing required fields, type mismatches, out-of-range values,
    and unknown keys.
    """
