# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from pydantic import ValidationError
from .models import ProviderConfig

log = logging.getLogger("capx")


class ConfigError(RuntimeError):
    pass


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_secrets_file(config_path: Path) -> Path | None:
    """
    Locate secrets.yaml using this priority:

    1. CAPX_SECRETS_FILE environment variable (explicit override)
    2. secrets.yaml in the same directory as the provider config
    """
    env = os.environ.get("CAPX_SECRETS_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("CAPX_SECRETS_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "secrets.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path) -> ProviderConfig:
    """
    Load and validate a capx provider config.

    Credentials normally live in a separate ``secrets.yaml`` whose structure
    mirrors the config, e.g.::

        params:
          credentials:
            AccessKey: AKIA...
            SecretKey: ...

    It is discovered via ``CAPX_SECRETS_FILE`` or next to the config file and
    deep-merged before validation. ``${ENV_VAR}`` references are expanded in
    both files.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    data = _load_yaml(path)

    secrets_path = _find_secrets_file(path)
    if secrets_path is not None:
        log.debug("[config] merging secrets from %s", secrets_path)
        _deep_merge(data, _load_yaml(secrets_path))

    try:
        return ProviderConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid provider config {path}:\n{e}") from e
