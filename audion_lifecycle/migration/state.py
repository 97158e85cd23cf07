from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from audion_lifecycle.migration.report import MigrationReport


class MigrationStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MigrationState:
    """Transient per-run fields; the persisted flag lives in the FlagStore."""

    status: MigrationStatus = MigrationStatus.IDLE
    status_message: str = ""
    errors: tuple[str, ...] = field(default_factory=tuple)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def describe_state(status: MigrationStatus, report: MigrationReport | None = None) -> str:
    """Status line for the migration banner.

    Depends only on the status and the report counts, so the same run always
    renders the same text.
    """

    if status is MigrationStatus.IDLE:
        return ""
    if status is MigrationStatus.RUNNING:
        return "Moving cover art to file storage..."
    if status is MigrationStatus.FAILED or report is None:
        return "Cover art migration failed. It will be retried on next launch."
    if status is MigrationStatus.SUCCEEDED:
        return (
            f"Cover art migrated: {_plural(report.tracks_migrated, 'track cover')}, "
            f"{_plural(report.albums_migrated, 'album cover')} "
            f"({report.processed}/{report.total} items)."
        )
    return (
        f"Cover art migration finished with {_plural(report.error_count, 'error')} "
        f"({report.processed}/{report.total} items). It will be retried on next launch."
    )
