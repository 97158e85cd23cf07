"""Cover art migration: coordinator, banner and the storage-side report."""

from __future__ import annotations

from audion_lifecycle.migration.banner import MigrationBanner
from audion_lifecycle.migration.coordinator import (
    MigrationCoordinator,
    MigrationOutcome,
    MigrationOutcomeKind,
)
from audion_lifecycle.migration.report import MigrationReport
from audion_lifecycle.migration.state import MigrationState, MigrationStatus, describe_state

__all__ = [
    "MigrationBanner",
    "MigrationCoordinator",
    "MigrationOutcome",
    "MigrationOutcomeKind",
    "MigrationReport",
    "MigrationState",
    "MigrationStatus",
    "describe_state",
]
