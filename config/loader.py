import os
import re
from pathlib import Path
from typing import Any, Dict, IO, Union

import yaml

from utils.errors import ConfigError

# Regex for environment variable substitution
ENV_VAR_MATCHER = re.compile(r"\$\{(\w+)\}")


class EnvVarLoader(yaml.SafeLoader):
    """A SafeLoader that expands ${VAR_NAME} references in scalar values."""


def _env_var_constructor(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    """
    Custom YAML constructor to substitute environment variables.
    e.g., ${VAR_NAME} will be replaced by the value of the VAR_NAME environment variable.
    """
    value = loader.construct_scalar(node)

    def replace(match: re.Match) -> str:
        env_var = match.group(1)
        replacement = os.getenv(env_var)
        if replacement is None:
            raise ConfigError(f"Environment variable '{env_var}' not found for substitution in config.")
        return replacement

    return ENV_VAR_MATCHER.sub(replace, value)


EnvVarLoader.add_constructor("!env", _env_var_constructor)
EnvVarLoader.add_implicit_resolver("!env", re.compile(r".*\$\{\w+\}.*"), None)


def load_config(config_file: IO[str]) -> Dict[str, Any]:
    """
    Loads a YAML configuration file.

    Args:
        config_file: A file-like object representing the YAML configuration.

    Returns:
        A dictionary containing the configuration.

    Raises:
        ConfigError: If the file cannot be parsed or is not a mapping.
    """
    try:
        config = yaml.load(config_file, Loader=EnvVarLoader)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}") from e

    if not config:
        return {}
    if not isinstance(config, dict):
        raise ConfigError("Configuration root must be a mapping.")
    return config


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Opens and loads a YAML configuration file from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return load_config(f)
