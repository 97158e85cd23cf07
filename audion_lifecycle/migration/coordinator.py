"""One-time cover art migration.

Older libraries stored cover images inline in the database. The storage side
knows how to move them to files; this module decides *whether* to run that
batch, reports progress to the banner, and records completion.

Rules:
- A run that finishes with zero item errors sets the persisted flag, and every
  later call is a no-op.
- A run with item errors, or one that fails outright, leaves the flag unset so
  the next launch reruns the whole batch. There is no per-item resume.
- Only one run is ever in flight. Concurrent callers share its outcome.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from audion_lifecycle.migration.banner import MigrationBanner
from audion_lifecycle.migration.report import MigrationReport
from audion_lifecycle.migration.state import MigrationState, MigrationStatus, describe_state
from audion_lifecycle.storage.flags import FlagStore


logger = logging.getLogger(__name__)

MigrateAssets = Callable[[], Awaitable["MigrationReport | Mapping[str, Any]"]]


class MigrationOutcomeKind(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MigrationOutcome:
    kind: MigrationOutcomeKind
    report: MigrationReport | None = None
    message: str = ""
    dismiss_after_s: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "report": self.report.model_dump() if self.report is not None else None,
            "message": self.message,
            "dismiss_after_s": self.dismiss_after_s,
        }


class MigrationCoordinator:
    def __init__(
        self,
        *,
        migrate_assets: MigrateAssets,
        flags: FlagStore,
        banner: MigrationBanner | None = None,
        flag_key: str = "covers_migrated",
        success_dismiss_s: float = 3.0,
        failure_dismiss_s: float = 5.0,
    ) -> None:
        self._migrate_assets = migrate_assets
        self._flags = flags
        self._banner = banner
        self._flag_key = flag_key
        self._success_dismiss_s = float(success_dismiss_s)
        self._failure_dismiss_s = float(failure_dismiss_s)

        self._state = MigrationState()
        self._inflight: asyncio.Future[MigrationOutcome] | None = None

    @property
    def state(self) -> MigrationState:
        return self._state

    @property
    def banner(self) -> MigrationBanner | None:
        return self._banner

    def is_migrated(self) -> bool:
        return self._flags.get(self._flag_key)

    async def run_migration_if_needed(self) -> MigrationOutcome:
        if self._inflight is not None:
            logger.info("migration_join_inflight")
            return await asyncio.shield(self._inflight)

        if self._flags.get(self._flag_key):
            logger.debug("migration_skipped", extra={"flag_key": self._flag_key})
            return MigrationOutcome(kind=MigrationOutcomeKind.SKIPPED)

        # No await between the flag check and this assignment.
        self._inflight = asyncio.ensure_future(self._run())
        return await asyncio.shield(self._inflight)

    async def _run(self) -> MigrationOutcome:
        try:
            return await self._run_batch()
        finally:
            self._inflight = None

    async def _run_batch(self) -> MigrationOutcome:
        self._transition(MigrationStatus.RUNNING)
        logger.info("migration_started", extra={"flag_key": self._flag_key})

        try:
            report = MigrationReport.coerce(await self._migrate_assets())
        except Exception as exc:  # noqa: BLE001
            logger.error("migration_failed", extra={"error": str(exc)}, exc_info=True)
            state = self._transition(MigrationStatus.FAILED)
            self._schedule_dismiss(self._failure_dismiss_s)
            return MigrationOutcome(
                kind=MigrationOutcomeKind.FAILED,
                message=state.status_message,
                dismiss_after_s=self._failure_dismiss_s,
            )

        fields = {
            "total": report.total,
            "processed": report.processed,
            "tracks_migrated": report.tracks_migrated,
            "albums_migrated": report.albums_migrated,
            "error_count": report.error_count,
        }

        if not report.clean:
            logger.warning("migration_partially_failed", extra={**fields, "errors": list(report.errors)})
            state = self._transition(MigrationStatus.PARTIALLY_FAILED, report)
            self._schedule_dismiss(self._failure_dismiss_s)
            return MigrationOutcome(
                kind=MigrationOutcomeKind.PARTIALLY_FAILED,
                report=report,
                message=state.status_message,
                dismiss_after_s=self._failure_dismiss_s,
            )

        state = self._transition(MigrationStatus.SUCCEEDED, report)
        try:
            self._flags.set(self._flag_key, True)
        except Exception:  # noqa: BLE001
            # The batch itself is done; next launch will rerun it against an already-migrated library.
            logger.exception("migration_flag_write_failed", extra={"flag_key": self._flag_key})
        logger.info("migration_succeeded", extra=fields)

        self._schedule_dismiss(self._success_dismiss_s)
        return MigrationOutcome(
            kind=MigrationOutcomeKind.SUCCEEDED,
            report=report,
            message=state.status_message,
            dismiss_after_s=self._success_dismiss_s,
        )

    def _transition(self, status: MigrationStatus, report: MigrationReport | None = None) -> MigrationState:
        state = MigrationState(
            status=status,
            status_message=describe_state(status, report),
            errors=tuple(report.errors) if report is not None else (),
        )
        self._state = state
        if self._banner is not None:
            self._banner.show(state)
        logger.debug("migration_status", extra={"status": status.value, "status_message": state.status_message})
        return state

    def _schedule_dismiss(self, delay_s: float) -> None:
        if self._banner is not None:
            self._banner.schedule_dismiss(delay_s, on_dismiss=self._clear_transient)

    def _clear_transient(self) -> None:
        if self._state.status is not MigrationStatus.RUNNING:
            self._state = MigrationState()
