"""Configuration loading and schema.

- YAML-first configuration under configs/*.yaml
- Strict ${ENV_VAR} expansion (missing/empty env vars are errors)
"""

from __future__ import annotations

from audion_lifecycle.config.loader import load_config, resolve_profile_configs
from audion_lifecycle.config.model import LifecycleConfig, MigrationConfig, PermissionConfig
from audion_lifecycle.errors import ConfigError

__all__ = [
    "ConfigError",
    "LifecycleConfig",
    "MigrationConfig",
    "PermissionConfig",
    "load_config",
    "resolve_profile_configs",
]
