from __future__ import annotations

import asyncio
import logging

import pytest

from audion_lifecycle.host import InProcessHost, PlatformInfo
from audion_lifecycle.migration import MigrationBanner, MigrationCoordinator, MigrationOutcomeKind
from audion_lifecycle.navigation import BackNavigationStateMachine, ViewHistory
from audion_lifecycle.permissions import PermissionGate, PermissionState
from audion_lifecycle.runtime.startup import StartupPhase, StartupSequencer
from audion_lifecycle.storage import MemoryFlagStore


NATIVE_MOBILE = PlatformInfo(os_name="android", is_mobile=True, is_native_host=True)
DESKTOP = PlatformInfo(os_name="linux")


class RecordingHost(InProcessHost):
    def __init__(self, events: list[str]) -> None:
        super().__init__()
        self.events = events

    def set_back_handler(self, handler):  # noqa: ANN001, ANN202
        self.events.append("attach_back_handler")
        super().set_back_handler(handler)

    def clear_back_handler(self) -> None:
        self.events.append("detach_back_handler")
        super().clear_back_handler()

    def add_visibility_listener(self, listener) -> None:  # noqa: ANN001
        self.events.append("attach_visibility")
        super().add_visibility_listener(listener)

    def remove_visibility_listener(self, listener) -> None:  # noqa: ANN001
        self.events.append("detach_visibility")
        super().remove_visibility_listener(listener)


class FakeSubsystems:
    def __init__(self, events: list[str], *, platform: PlatformInfo = NATIVE_MOBILE) -> None:
        self.events = events
        self.platform = platform
        self.fail: set[str] = set()
        self.visible_changes: list[bool] = []
        self.preload_gate: asyncio.Event | None = None

    async def _step(self, name: str) -> None:
        # Yield a few times so any overlap between phases would show up in the event order.
        for _ in range(3):
            await asyncio.sleep(0)
        self.events.append(name)
        if name in self.fail:
            raise RuntimeError(f"{name} exploded")

    async def detect_platform(self) -> PlatformInfo:
        await self._step("detect_platform")
        return self.platform

    async def init_settings(self) -> None:
        await self._step("settings")

    async def init_theme(self) -> None:
        await self._step("theme")

    async def init_mobile_detection(self) -> None:
        await self._step("mobile_detection")

    async def init_audio_backend(self) -> None:
        self.events.append("audio_backend_begin")
        await self._step("audio_backend")

    def on_visibility_change(self, visible: bool) -> None:
        self.visible_changes.append(visible)

    async def preload_liked(self) -> None:
        if self.preload_gate is not None:
            await self.preload_gate.wait()
        await self._step("preload_liked")

    async def init_notifications(self) -> None:
        await self._step("notifications")

    async def release_player(self) -> None:
        await self._step("release_player")

    async def migrate_assets(self) -> dict:
        self.events.append("migration_begin")
        await self._step("migrate_assets")
        return {"total": 2, "processed": 2, "tracks_migrated": 1, "albums_migrated": 1, "errors": []}

    async def request_capability(self) -> bool:
        await self._step("permission")
        return "permission_denied" not in self.fail

    async def open_host_settings(self) -> None:
        await self._step("open_settings")


def _build(events: list[str], subsystems: FakeSubsystems, scheduler) -> tuple[StartupSequencer, RecordingHost]:  # noqa: ANN001
    host = RecordingHost(events)
    migration = MigrationCoordinator(
        migrate_assets=subsystems.migrate_assets,
        flags=MemoryFlagStore(),
        banner=MigrationBanner(scheduler=scheduler),
    )
    navigation = BackNavigationStateMachine([ViewHistory("tracks")])
    permissions = PermissionGate(
        request_capability=subsystems.request_capability,
        open_host_settings=subsystems.open_host_settings,
    )
    sequencer = StartupSequencer(
        subsystems=subsystems,
        host=host,
        migration=migration,
        navigation=navigation,
        permissions=permissions,
    )
    return sequencer, host


def _startup_only(events: list[str]) -> list[str]:
    return [e for e in events if e != "preload_liked"]


def test_phases_run_in_strict_order_on_native_mobile(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    sequencer, _ = _build(events, subsystems, scheduler)

    report = asyncio.run(sequencer.run())

    assert _startup_only(events) == [
        "detect_platform",
        "settings",
        "theme",
        "mobile_detection",
        "audio_backend_begin",
        "audio_backend",
        "attach_visibility",
        "attach_back_handler",
        "permission",
        "notifications",
        "migration_begin",
        "migrate_assets",
    ]
    assert [p.phase for p in report.phases] == list(StartupPhase)
    assert all(p.ok and not p.skipped for p in report.phases)
    assert report.platform == NATIVE_MOBILE
    assert report.permission is PermissionState.GRANTED
    assert report.migration is not None and report.migration.kind is MigrationOutcomeKind.SUCCEEDED


def test_audio_backend_waits_for_platform_detection(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, _ = _build(events, FakeSubsystems(events), scheduler)

    asyncio.run(sequencer.run())

    assert events.index("detect_platform") < events.index("audio_backend_begin")


def test_migration_starts_after_platform_block(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, _ = _build(events, FakeSubsystems(events), scheduler)

    asyncio.run(sequencer.run())

    assert events.index("notifications") < events.index("migration_begin")
    assert events.index("permission") < events.index("notifications")


def test_desktop_skips_platform_block_but_still_migrates(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, host = _build(events, FakeSubsystems(events, platform=DESKTOP), scheduler)

    report = asyncio.run(sequencer.run())

    assert "attach_back_handler" not in events
    assert "permission" not in events
    assert "notifications" not in events
    assert "migrate_assets" in events
    assert host.has_back_handler is False
    assert report.permission is None

    record = report.record(StartupPhase.PLATFORM_INTEGRATION)
    assert record is not None and record.skipped


@pytest.mark.parametrize(
    ("platform", "entered"),
    [
        (PlatformInfo(is_mobile=True, is_native_host=False), False),
        (PlatformInfo(is_mobile=False, is_native_host=True), False),
        (PlatformInfo(is_mobile=True, is_native_host=True), True),
    ],
)
def test_platform_block_needs_mobile_and_native_host(scheduler, platform: PlatformInfo, entered: bool) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, _ = _build(events, FakeSubsystems(events, platform=platform), scheduler)

    asyncio.run(sequencer.run())

    assert ("notifications" in events) is entered


def test_audio_failure_does_not_block_later_phases(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    subsystems.fail.add("audio_backend")
    sequencer, _ = _build(events, subsystems, scheduler)

    report = asyncio.run(sequencer.run())

    audio = report.record(StartupPhase.AUDIO_BACKEND)
    assert audio is not None and audio.ok is False
    assert audio.errors == ["audio_backend: audio_backend exploded"]
    # The listener is its own step and still attaches.
    assert "attach_visibility" in events
    assert report.permission is PermissionState.GRANTED
    assert report.migration is not None and report.migration.kind is MigrationOutcomeKind.SUCCEEDED


def test_failing_store_is_isolated_within_its_phase(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    subsystems.fail.add("theme")
    sequencer, _ = _build(events, subsystems, scheduler)

    report = asyncio.run(sequencer.run())

    assert "mobile_detection" in events
    stores = report.record(StartupPhase.CORE_STORES)
    assert stores is not None and stores.ok is False
    assert len(stores.errors) == 1


def test_platform_detection_failure_falls_back_to_desktop(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    subsystems.fail.add("detect_platform")
    sequencer, _ = _build(events, subsystems, scheduler)

    report = asyncio.run(sequencer.run())

    assert report.platform == PlatformInfo()
    record = report.record(StartupPhase.PLATFORM_INTEGRATION)
    assert record is not None and record.skipped
    assert "migrate_assets" in events


def test_permission_denial_is_not_a_phase_failure(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    subsystems.fail.add("permission_denied")
    sequencer, _ = _build(events, subsystems, scheduler)

    report = asyncio.run(sequencer.run())

    assert report.permission is PermissionState.DENIED
    record = report.record(StartupPhase.PLATFORM_INTEGRATION)
    assert record is not None and record.ok
    assert "notifications" in events


def test_preload_failure_is_logged_not_fatal(scheduler, caplog: pytest.LogCaptureFixture) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    subsystems.fail.add("preload_liked")
    sequencer, _ = _build(events, subsystems, scheduler)

    async def go():
        report = await sequencer.run()
        await sequencer.drain()
        return report

    with caplog.at_level(logging.ERROR, logger="audion_lifecycle.runtime.startup"):
        report = asyncio.run(go())

    preload = report.record(StartupPhase.DATA_PRELOAD)
    assert preload is not None and preload.ok
    assert any(r.getMessage() == "background_task_failed" for r in caplog.records)
    assert report.migration is not None and report.migration.kind is MigrationOutcomeKind.SUCCEEDED


def test_preload_does_not_block_startup(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    sequencer, _ = _build(events, subsystems, scheduler)

    async def go():
        subsystems.preload_gate = asyncio.Event()
        report = await sequencer.run()
        pending = len(sequencer.background_tasks)
        subsystems.preload_gate.set()
        await sequencer.drain()
        return report, pending

    report, pending = asyncio.run(go())

    assert pending == 1
    assert report.migration is not None
    assert events[-1] == "preload_liked"


def test_run_twice_returns_first_report(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, _ = _build(events, FakeSubsystems(events), scheduler)

    async def go():
        first = await sequencer.run()
        second = await sequencer.run()
        return first, second

    first, second = asyncio.run(go())

    assert first is second
    assert events.count("detect_platform") == 1
    assert events.count("migrate_assets") == 1


def test_shutdown_mirrors_startup(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    sequencer, host = _build(events, FakeSubsystems(events), scheduler)

    async def go():
        await sequencer.run()
        await sequencer.drain()
        events.clear()
        await sequencer.shutdown()
        await sequencer.shutdown()

    asyncio.run(go())

    assert events == ["detach_visibility", "detach_back_handler", "release_player"]
    assert host.has_back_handler is False
    assert host.visibility_listener_count == 0


def test_shutdown_continues_after_failing_step(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    sequencer, host = _build(events, subsystems, scheduler)

    def broken_remove(listener) -> None:  # noqa: ANN001
        raise RuntimeError("host gone")

    async def go():
        await sequencer.run()
        host.remove_visibility_listener = broken_remove  # type: ignore[method-assign]
        await sequencer.shutdown()

    asyncio.run(go())

    assert "detach_back_handler" in events
    assert "release_player" in events


def test_shutdown_cancels_pending_preload_and_closes_banner(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    sequencer, _ = _build(events, subsystems, scheduler)

    async def go():
        subsystems.preload_gate = asyncio.Event()
        await sequencer.run()
        tasks = list(sequencer.background_tasks)
        await sequencer.shutdown()
        return tasks

    tasks = asyncio.run(go())

    assert len(tasks) == 1 and tasks[0].cancelled()
    assert "preload_liked" not in events
    assert scheduler.calls and scheduler.calls[0].cancelled


def test_visibility_changes_reach_subsystems_until_shutdown(scheduler) -> None:  # noqa: ANN001
    events: list[str] = []
    subsystems = FakeSubsystems(events)
    sequencer, host = _build(events, subsystems, scheduler)

    async def go():
        await sequencer.run()
        host.set_visible(False)
        host.set_visible(True)
        await sequencer.shutdown()
        host.set_visible(False)

    asyncio.run(go())

    assert subsystems.visible_changes == [False, True]
