import collections.abc
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from config.loader import load_config_file
from config.models import Config
from utils.errors import ConfigError
from utils.logger import logger

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"
USER_CONFIG_DIR = Path.home() / ".aifix"
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_FILENAME = ".aifix.yaml"

# Credentials the CLI refuses to start without, with the config attribute each fills.
REQUIRED_ENV_VARS = {
    "ANTHROPIC_API_KEY": ("model", "api_key"),
    "GITHUB_TOKEN": ("github", "token"),
    "LINEAR_API_KEY": ("linear", "api_key"),
    "GITHUB_REPOSITORY": ("github", "repository"),
}


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merges two dictionaries.
    Arrays are replaced, not merged.
    """
    for key, value in source.items():
        if isinstance(value, collections.abc.Mapping) and key in target and isinstance(target[key], collections.abc.Mapping):
            target[key] = deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def find_project_root(start_dir: Path = Path(".")) -> Optional[Path]:
    """
    Finds the project root by searching upwards for a .git directory.
    """
    d = start_dir.resolve()
    while d != d.parent:
        if (d / ".git").is_dir():
            return d
        d = d.parent
    return None


def find_project_config(start_dir: Path = Path(".")) -> Optional[Path]:
    """
    Finds the project-specific configuration file (.aifix.yaml) in the project root.
    """
    project_root = find_project_root(start_dir)
    if project_root:
        project_config_path = project_root / PROJECT_CONFIG_FILENAME
        if project_config_path.is_file():
            return project_config_path
    return None


def parse_repo_mapping(raw: str) -> Dict[str, str]:
    """
    Parses a team-to-repository mapping of the form "NAV=owner/nav,API=owner/api".
    Keys are lower-cased; malformed entries are skipped.
    """
    mapping: Dict[str, str] = {}
    for entry in raw.split(","):
        team, sep, repo = entry.partition("=")
        team, repo = team.strip(), repo.strip()
        if not sep or not team or "/" not in repo:
            if entry.strip():
                logger.warning(f"Ignoring malformed REPO_MAPPING entry: '{entry.strip()}'")
            continue
        mapping[team.lower()] = repo
    return mapping


def apply_env_overrides(config: Config, environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Applies credentials and repository settings from environment variables.
    Environment values take precedence over configuration files.
    """
    env = os.environ if environ is None else environ

    if env.get("ANTHROPIC_API_KEY"):
        config.model.api_key = env["ANTHROPIC_API_KEY"]
    if env.get("GITHUB_TOKEN"):
        config.github.token = env["GITHUB_TOKEN"]
    if env.get("GITHUB_REPOSITORY"):
        config.github.repository = env["GITHUB_REPOSITORY"]
    if env.get("LINEAR_API_KEY"):
        config.linear.api_key = env["LINEAR_API_KEY"]
    if env.get("LINEAR_WEBHOOK_SECRET"):
        config.linear.webhook_secret = env["LINEAR_WEBHOOK_SECRET"]
    if env.get("REPO_MAPPING"):
        config.repo_mapping = {
            **{k.lower(): v for k, v in config.repo_mapping.items()},
            **parse_repo_mapping(env["REPO_MAPPING"]),
        }
    return config


def missing_settings(config: Config, names: Optional[List[str]] = None) -> List[str]:
    """
    Returns the names of required environment variables whose setting is empty.
    """
    missing = []
    for name in names or list(REQUIRED_ENV_VARS):
        section, attribute = REQUIRED_ENV_VARS[name]
        if not getattr(getattr(config, section), attribute):
            missing.append(name)
    return missing


def load_and_merge_configs(custom_config_path: Optional[str] = None) -> Config:
    """
    Loads all configurations (default, user, project) and merges them,
    then applies environment overrides.
    A custom config path can be provided to override all files.
    """
    config_paths: List[Path] = []

    # 1. Default config
    if DEFAULT_CONFIG_PATH.is_file():
        config_paths.append(DEFAULT_CONFIG_PATH)
    else:
        raise ConfigError("Default configuration file not found.")

    # 2. User config
    if USER_CONFIG_PATH.is_file():
        config_paths.append(USER_CONFIG_PATH)

    # 3. Project config
    project_config_path = find_project_config()
    if project_config_path:
        config_paths.append(project_config_path)

    # If a custom config path is provided via CLI, it has the highest precedence.
    if custom_config_path:
        path = Path(custom_config_path)
        if not path.is_file():
            raise ConfigError(f"Custom config file not found at: {custom_config_path}")
        config_paths = [path] # It overrides all others
        logger.info(f"Using custom configuration from: {custom_config_path}")

    merged_config: Dict[str, Any] = {}
    for path in config_paths:
        logger.info(f"Loading configuration from: {path}")
        try:
            merged_config = deep_merge(merged_config, load_config_file(path))
        except ConfigError:
            raise
        except OSError as e:
            logger.warning(f"Could not read config at {path}: {e}")

    try:
        final_config = Config(**merged_config)
    except Exception as e:
        raise ConfigError(f"Configuration validation failed: {e}")

    final_config = apply_env_overrides(final_config)
    logger.debug(f"Final merged config: {final_config.model_dump_json(indent=2, exclude={'model': {'api_key'}, 'github': {'token'}, 'linear': {'api_key', 'webhook_secret'}})}")
    return final_config
