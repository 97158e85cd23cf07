from __future__ import annotations

import logging
from typing import Callable

from audion_lifecycle.core.clock import Cancellable, LoopScheduler, Scheduler
from audion_lifecycle.migration.state import MigrationState


logger = logging.getLogger(__name__)


class MigrationBanner:
    """Display-side owner of the migration status and its auto-dismiss timer.

    At most one dismissal is pending at a time. After ``close()`` the banner
    is dead: late timer callbacks and further ``show()`` calls are dropped.
    """

    def __init__(self, *, scheduler: Scheduler | None = None) -> None:
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._timer: Cancellable | None = None
        self._on_dismiss: Callable[[], None] | None = None
        self._closed = False

        self.visible = False
        self.state: MigrationState | None = None
        self.dismiss_after_s: float | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def show(self, state: MigrationState) -> None:
        """Display ``state``, dropping any dismissal scheduled for the previous one."""

        if self._closed:
            return
        self._cancel_timer()
        self._on_dismiss = None
        self.dismiss_after_s = None
        self.state = state
        self.visible = True

    def schedule_dismiss(self, delay_s: float, *, on_dismiss: Callable[[], None] | None = None) -> None:
        if self._closed:
            return
        self._cancel_timer()
        self.dismiss_after_s = delay_s
        self._on_dismiss = on_dismiss
        self._timer = self._scheduler.call_later(delay_s, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        self.dismiss()

    def dismiss(self) -> None:
        """Hide the banner and drop the transient run state."""

        if self._closed:
            return
        self._cancel_timer()
        self.visible = False
        self.state = None
        self.dismiss_after_s = None

        callback, self._on_dismiss = self._on_dismiss, None
        if callback is not None:
            callback()
        logger.debug("migration_banner_dismissed")

    def close(self) -> None:
        self._cancel_timer()
        self._on_dismiss = None
        self._closed = True
        self.visible = False

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
