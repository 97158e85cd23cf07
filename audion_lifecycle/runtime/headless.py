from __future__ import annotations

import logging
import os
import platform
import sys

from audion_lifecycle.host import PlatformInfo
from audion_lifecycle.migration.report import MigrationReport


logger = logging.getLogger(__name__)


def _truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in {"1", "true", "yes", "on"}


class HeadlessSubsystems:
    """Collaborators for running the lifecycle without a UI.

    Used by the CLI. Store and player initialization are log-only here, the
    capability is always available on a desktop, and there is no inline
    cover data to move, so migration reports an empty batch.
    """

    def __init__(self) -> None:
        self.audio_ready = False
        self.visible = True
        self.liked_ids: set[int] = set()

    async def detect_platform(self) -> PlatformInfo:
        is_android = hasattr(sys, "getandroidapilevel")
        return PlatformInfo(
            os_name="android" if is_android else platform.system().lower() or sys.platform,
            is_mobile=is_android,
            is_native_host=_truthy(os.getenv("AUDION_NATIVE_HOST")),
        )

    async def init_settings(self) -> None:
        logger.info("settings_ready")

    async def init_theme(self) -> None:
        logger.info("theme_ready")

    async def init_mobile_detection(self) -> None:
        logger.info("mobile_detection_ready")

    async def init_audio_backend(self) -> None:
        self.audio_ready = True
        logger.info("audio_backend_ready")

    def on_visibility_change(self, visible: bool) -> None:
        self.visible = visible
        logger.info("visibility_changed", extra={"visible": visible})

    async def preload_liked(self) -> None:
        logger.info("liked_items_loaded", extra={"count": len(self.liked_ids)})

    async def init_notifications(self) -> None:
        logger.info("notifications_ready")

    async def release_player(self) -> None:
        self.audio_ready = False
        logger.info("player_released")

    async def migrate_assets(self) -> MigrationReport:
        return MigrationReport(total=0, processed=0)

    async def request_capability(self) -> bool:
        return True

    async def open_host_settings(self) -> None:
        logger.info("host_settings_unavailable")
