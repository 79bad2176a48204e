# npm_installer/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, environment
variables, an optional YAML file and explicit overrides, applying this
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (NPM_INSTALL_*, loaded by BaseSettings)
3. YAML Configuration File
4. Overrides passed by the caller (command line)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates ``source`` with the values of ``overrides``.

    Nested dictionaries are merged key by key; any other value replaces the
    one in ``source``. ``None`` values never replace an existing key.

    Returns:
        Dict[str, Any]: ``source``, updated in place.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _read_yaml(
    config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}
    logger_to_use.info(f"Loaded configuration from {config_path}")
    return yaml_data


def load_app_settings(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Load the installer settings.

    Args:
        config_file: Optional YAML file whose keys mirror the AppSettings
            structure (``paths``, ``release``, ``toolchain``, ``services``).
        overrides: Values applied last, with the same structure.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        pydantic.ValidationError: If the merged values do not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    current_values_dict = AppSettings().model_dump(exclude_defaults=False)

    if config_file:
        config_path = Path(config_file)
        if config_path.is_file():
            current_values_dict = _deep_update(
                current_values_dict, _read_yaml(config_path, logger_to_use)
            )
        else:
            logger_to_use.warning(
                f"Configuration file '{config_path}' not found. Using defaults and environment variables."
            )

    if overrides:
        current_values_dict = _deep_update(current_values_dict, overrides)

    return AppSettings(**current_values_dict)
