from __future__ import annotations

from audion_lifecycle.permissions.gate import PermissionGate, PermissionState

__all__ = ["PermissionGate", "PermissionState"]
