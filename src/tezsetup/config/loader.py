# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/config/loader.py

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from .models import SetupConfig

log = logging.getLogger("tezsetup")

CONFIG_ENV = "TEZSETUP_CONFIG"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif value not in (None, ""):
            base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    expanded = os.path.expandvars(path.read_text())
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _find_config_file(path: str | Path | None) -> Path | None:
    """
    Resolve the config file:

    1. explicit *path* (must exist)
    2. TEZSETUP_CONFIG environment variable
    3. none: built-in defaults only
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"config file not found: {p}")
        return p

    env = os.environ.get(CONFIG_ENV)
    if env:
        p = Path(env).expanduser()
        if p.is_file():
            return p
        log.warning("%s=%s does not exist, using defaults", CONFIG_ENV, env)
    return None


def load_config(path: str | Path | None = None) -> SetupConfig:
    """
    Build the effective SetupConfig: defaults with the YAML file (if any)
    deep-merged on top, then validated by pydantic.
    """
    data = SetupConfig().model_dump(mode="json")

    cfg_path = _find_config_file(path)
    if cfg_path:
        log.debug("Loading config from %s", cfg_path)
        _deep_merge(data, _load_yaml(cfg_path))
    else:
        log.debug("No config file, using defaults")

    return SetupConfig.model_validate(data)
