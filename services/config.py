# services/config.py
#
# Startup configuration.  Values come from the environment (optionally
# pre-seeded from a .env file by main.py) and, underneath that, from an
# optional config file in the data directory:
#
#   data/config.json | config.yaml | config.yml | config.toml
#
# Keys in the file use the field names of MirrorConfig (discord_token,
# source_channels, ...); environment variables use the names in ENV_KEYS
# and take precedence.

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

import services.util as u
import services.logger as log
from services.config_schema import ENV_KEYS, MirrorConfig
from services.error import ConfigError

l = log.get_logger()

_YAML_EXTS = {".yaml", ".yml"}
_TOML_EXTS = {".toml"}

_CONFIG_NAMES = ["config.json", "config.yaml", "config.yml", "config.toml"]


def find_config_file(directory: Path) -> Path | None:
    """Return the first existing config file found in *directory*."""
    for name in _CONFIG_NAMES:
        p = directory / name
        if p.is_file():
            return p
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a config file; format is inferred from the file extension."""
    ext = path.suffix.lower()
    try:
        if ext in _YAML_EXTS:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif ext in _TOML_EXTS:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Read config failed: {path}, Error: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load(data_path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> MirrorConfig:
    """
    Build and validate the application config.

    :param data_path: Directory searched for a config file (default: ``MIRROR_DATA_PATH`` or ``data``).
    :param environ: Environment mapping to read (default: ``os.environ``).
    :raises ConfigError: if a required value is missing or a value is invalid.
    """
    environ = os.environ if environ is None else environ
    directory = Path(data_path if data_path is not None else u.get_data_path())

    raw: dict[str, Any] = {}
    path = find_config_file(directory)
    if path is not None:
        l.info(f"Loading config from: {path}")
        raw.update(read_config_file(path))

    for env_key, field in ENV_KEYS.items():
        value = environ.get(env_key)
        if value is not None and value.strip() != "":
            raw[field] = value

    try:
        return MirrorConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration:\n{exc}") from exc
