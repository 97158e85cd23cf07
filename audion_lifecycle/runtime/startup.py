"""Ordered process startup and the matching teardown.

Phases run strictly one after another, each awaited before the next starts:

1. platform detection (later phases read its result)
2. settings, theme and mobile-detection stores
3. audio backend, then the visibility listener
4. liked-items preload, started in the background
5. native mobile host only: back handler, permission check, notifications
6. cover migration, always last

A failing phase is logged and recorded; it never stops the phases after it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, Sequence

from audion_lifecycle.core.clock import monotonic_ms
from audion_lifecycle.host import HostBridge, PlatformInfo
from audion_lifecycle.migration.coordinator import MigrationCoordinator, MigrationOutcome
from audion_lifecycle.navigation.back import BackNavigationStateMachine
from audion_lifecycle.permissions.gate import PermissionGate, PermissionState


logger = logging.getLogger(__name__)

Step = tuple[str, Callable[[], Awaitable[None]]]


class StartupPhase(str, Enum):
    PLATFORM_DETECTION = "platform_detection"
    CORE_STORES = "core_stores"
    AUDIO_BACKEND = "audio_backend"
    DATA_PRELOAD = "data_preload"
    PLATFORM_INTEGRATION = "platform_integration"
    MIGRATION = "migration"


class Subsystems(Protocol):
    """Everything startup calls into but does not own."""

    async def detect_platform(self) -> PlatformInfo: ...

    async def init_settings(self) -> None: ...

    async def init_theme(self) -> None: ...

    async def init_mobile_detection(self) -> None: ...

    async def init_audio_backend(self) -> None: ...

    def on_visibility_change(self, visible: bool) -> None: ...

    async def preload_liked(self) -> None: ...

    async def init_notifications(self) -> None: ...

    async def release_player(self) -> None: ...


@dataclass(slots=True)
class PhaseRecord:
    phase: StartupPhase
    ok: bool = True
    skipped: bool = False
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "ok": self.ok,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "duration_ms": self.duration_ms,
        }


@dataclass(slots=True)
class StartupReport:
    platform: PlatformInfo = field(default_factory=PlatformInfo)
    phases: list[PhaseRecord] = field(default_factory=list)
    permission: PermissionState | None = None
    migration: MigrationOutcome | None = None

    def record(self, phase: StartupPhase) -> PhaseRecord | None:
        for rec in self.phases:
            if rec.phase is phase:
                return rec
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": {
                "os_name": self.platform.os_name,
                "is_mobile": self.platform.is_mobile,
                "is_native_host": self.platform.is_native_host,
            },
            "phases": [p.to_dict() for p in self.phases],
            "permission": self.permission.value if self.permission is not None else None,
            "migration": self.migration.to_dict() if self.migration is not None else None,
        }


class StartupSequencer:
    def __init__(
        self,
        *,
        subsystems: Subsystems,
        host: HostBridge,
        migration: MigrationCoordinator,
        navigation: BackNavigationStateMachine | None = None,
        permissions: PermissionGate | None = None,
    ) -> None:
        self._subsystems = subsystems
        self._host = host
        self._migration = migration
        self._navigation = navigation
        self._permissions = permissions

        self._report: StartupReport | None = None
        self._visibility_attached = False
        self._background: set[asyncio.Task[None]] = set()
        self._shut_down = False

    @property
    def report(self) -> StartupReport | None:
        return self._report

    @property
    def background_tasks(self) -> frozenset[asyncio.Task[None]]:
        return frozenset(self._background)

    async def run(self) -> StartupReport:
        if self._report is not None:
            logger.warning("startup_already_ran")
            return self._report

        report = StartupReport()
        self._report = report
        logger.info("startup_begin")

        await self._phase(report, StartupPhase.PLATFORM_DETECTION, [("detect_platform", self._detect_platform)])
        await self._phase(
            report,
            StartupPhase.CORE_STORES,
            [
                ("settings", self._subsystems.init_settings),
                ("theme", self._subsystems.init_theme),
                ("mobile_detection", self._subsystems.init_mobile_detection),
            ],
        )
        await self._phase(
            report,
            StartupPhase.AUDIO_BACKEND,
            [
                ("audio_backend", self._subsystems.init_audio_backend),
                ("visibility_listener", self._attach_visibility_listener),
            ],
        )
        await self._phase(report, StartupPhase.DATA_PRELOAD, [("liked_items", self._start_preload)])

        if report.platform.wants_platform_integration:
            steps: list[Step] = []
            if self._navigation is not None:
                steps.append(("back_handler", self._attach_back_handler))
            if self._permissions is not None:
                steps.append(("permission", self._check_permission))
            steps.append(("notifications", self._subsystems.init_notifications))
            await self._phase(report, StartupPhase.PLATFORM_INTEGRATION, steps)
        else:
            report.phases.append(PhaseRecord(phase=StartupPhase.PLATFORM_INTEGRATION, skipped=True))
            logger.info("startup_phase_skipped", extra={"phase": StartupPhase.PLATFORM_INTEGRATION.value})

        await self._phase(report, StartupPhase.MIGRATION, [("cover_migration", self._run_migration)])

        logger.info(
            "startup_complete",
            extra={"failed_phases": [p.phase.value for p in report.phases if not p.ok]},
        )
        return report

    async def _phase(self, report: StartupReport, phase: StartupPhase, steps: Sequence[Step]) -> PhaseRecord:
        record = PhaseRecord(phase=phase)
        t0 = monotonic_ms()

        for name, step in steps:
            try:
                await step()
            except Exception as exc:  # noqa: BLE001
                record.ok = False
                record.errors.append(f"{name}: {exc}")
                logger.exception("startup_step_failed", extra={"phase": phase.value, "step": name})

        record.duration_ms = monotonic_ms() - t0
        report.phases.append(record)
        logger.info(
            "startup_phase_done",
            extra={"phase": phase.value, "ok": record.ok, "duration_ms": record.duration_ms},
        )
        return record

    async def _detect_platform(self) -> None:
        assert self._report is not None
        self._report.platform = await self._subsystems.detect_platform()
        logger.info(
            "platform_detected",
            extra={
                "os_name": self._report.platform.os_name,
                "is_mobile": self._report.platform.is_mobile,
                "is_native_host": self._report.platform.is_native_host,
            },
        )

    async def _attach_visibility_listener(self) -> None:
        self._host.add_visibility_listener(self._on_visibility)
        self._visibility_attached = True

    def _on_visibility(self, visible: bool) -> None:
        try:
            self._subsystems.on_visibility_change(visible)
        except Exception:  # noqa: BLE001
            logger.exception("visibility_handler_failed", extra={"visible": visible})

    async def _start_preload(self) -> None:
        task = asyncio.create_task(self._subsystems.preload_liked(), name="preload_liked")
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                extra={"task": task.get_name(), "error": str(exc)},
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def _attach_back_handler(self) -> None:
        assert self._navigation is not None
        self._navigation.attach(self._host)

    async def _check_permission(self) -> None:
        assert self._permissions is not None and self._report is not None
        self._report.permission = await self._permissions.check_and_request()

    async def _run_migration(self) -> None:
        assert self._report is not None
        self._report.migration = await self._migration.run_migration_if_needed()

    async def drain(self) -> None:
        """Wait for background work started during startup."""

        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def shutdown(self) -> None:
        """Undo startup: visibility listener, back handler, player, in that order."""

        if self._shut_down:
            return
        self._shut_down = True

        if self._visibility_attached:
            try:
                self._host.remove_visibility_listener(self._on_visibility)
            except Exception:  # noqa: BLE001
                logger.exception("teardown_step_failed", extra={"step": "visibility_listener"})
            self._visibility_attached = False

        if self._navigation is not None:
            try:
                self._navigation.detach()
            except Exception:  # noqa: BLE001
                logger.exception("teardown_step_failed", extra={"step": "back_handler"})

        try:
            await self._subsystems.release_player()
        except Exception:  # noqa: BLE001
            logger.exception("teardown_step_failed", extra={"step": "release_player"})

        if self._migration.banner is not None:
            self._migration.banner.close()

        pending = [t for t in self._background if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("shutdown_complete", extra={"cancelled_tasks": len(pending)})
