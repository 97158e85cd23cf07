from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

from audion_lifecycle.errors import ConfigError


def _get(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def _non_negative(raw: Mapping[str, Any], path: str, default: float) -> float:
    value = _get(raw, path, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError("must be a number", path=path)
    if not math.isfinite(value):
        raise ConfigError("must be finite", path=path)
    if value < 0:
        raise ConfigError("must be >= 0", path=path)
    return float(value)


@dataclass(frozen=True)
class MigrationConfig:
    flag_key: str = "covers_migrated"
    success_dismiss_s: float = 3.0
    failure_dismiss_s: float = 5.0


@dataclass(frozen=True)
class PermissionConfig:
    capability: str = "audio"
    recheck_delay_s: float = 1.0


@dataclass(frozen=True)
class LifecycleConfig:
    state_file: Path = Path(".audion/state.json")
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    permissions: PermissionConfig = field(default_factory=PermissionConfig)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LifecycleConfig":
        """Build a typed config from the expanded YAML mapping.

        Every key is optional; the defaults match the shipped ``configs/app.yaml``.
        """

        section = raw.get("lifecycle", {})
        if section is None:
            section = {}
        if not isinstance(section, Mapping):
            raise ConfigError("must be a mapping", path="lifecycle")

        state_file = _get(section, "state_file", str(cls.state_file))
        if not isinstance(state_file, str) or not state_file.strip():
            raise ConfigError("must be a non-empty string", path="lifecycle.state_file")

        flag_key = _get(section, "migration.flag_key", MigrationConfig.flag_key)
        if not isinstance(flag_key, str) or not flag_key.strip():
            raise ConfigError("must be a non-empty string", path="lifecycle.migration.flag_key")

        capability = _get(section, "permissions.capability", PermissionConfig.capability)
        if not isinstance(capability, str) or not capability.strip():
            raise ConfigError("must be a non-empty string", path="lifecycle.permissions.capability")

        wrapped = {"lifecycle": section}
        return cls(
            state_file=Path(state_file).expanduser(),
            migration=MigrationConfig(
                flag_key=flag_key,
                success_dismiss_s=_non_negative(
                    wrapped, "lifecycle.migration.success_dismiss_s", MigrationConfig.success_dismiss_s
                ),
                failure_dismiss_s=_non_negative(
                    wrapped, "lifecycle.migration.failure_dismiss_s", MigrationConfig.failure_dismiss_s
                ),
            ),
            permissions=PermissionConfig(
                capability=capability,
                recheck_delay_s=_non_negative(
                    wrapped, "lifecycle.permissions.recheck_delay_s", PermissionConfig.recheck_delay_s
                ),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["state_file"] = str(self.state_file)
        return out
