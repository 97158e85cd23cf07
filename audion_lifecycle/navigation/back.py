"""Back-signal arbitration.

One physical back press closes exactly one thing. Sources are checked in a
fixed order, narrowest overlay first:

    context menu -> full-screen player -> queue panel -> search overlay -> view history

The state machine owns none of this state. Each source belongs to its own
subsystem and is reached through ``is_active()`` / ``deactivate()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Protocol, Sequence, TypeVar

from audion_lifecycle.host import HostBridge


logger = logging.getLogger(__name__)

T = TypeVar("T")


class DismissibleSource(Protocol):
    name: str

    def is_active(self) -> bool: ...

    def deactivate(self) -> None: ...


@dataclass(slots=True)
class CallbackSource:
    """Adapts a subsystem's getter/closer pair into a DismissibleSource."""

    name: str
    active: Callable[[], bool]
    close: Callable[[], None]

    def is_active(self) -> bool:
        return bool(self.active())

    def deactivate(self) -> None:
        self.close()


class ViewHistory(Generic[T]):
    """Stack of visited views; the bottom entry is the root and is never popped."""

    name = "view_history"

    def __init__(self, root: T) -> None:
        self._stack: list[T] = [root]

    @property
    def current(self) -> T:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        return len(self._stack)

    def push(self, view: T) -> None:
        if view == self._stack[-1]:
            return
        self._stack.append(view)

    def can_go_back(self) -> bool:
        return len(self._stack) > 1

    def go_back(self) -> T:
        if self.can_go_back():
            self._stack.pop()
        return self._stack[-1]

    # DismissibleSource
    def is_active(self) -> bool:
        return self.can_go_back()

    def deactivate(self) -> None:
        self.go_back()


class BackNavigationStateMachine:
    def __init__(self, sources: Sequence[DismissibleSource]) -> None:
        self._sources: tuple[DismissibleSource, ...] = tuple(sources)
        self._host: HostBridge | None = None

    @classmethod
    def standard(
        cls,
        *,
        context_menu: DismissibleSource,
        full_screen: DismissibleSource,
        queue_panel: DismissibleSource,
        search_overlay: DismissibleSource,
        history: DismissibleSource,
    ) -> "BackNavigationStateMachine":
        return cls([context_menu, full_screen, queue_panel, search_overlay, history])

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self._sources]

    @property
    def attached(self) -> bool:
        return self._host is not None

    def handle_back_signal(self) -> bool:
        """Dismiss the top-most active source.

        Returns False when nothing was active, so the host can take its own
        default action (the Android shell minimizes the app).
        """

        for source in self._sources:
            try:
                active = source.is_active()
            except Exception:  # noqa: BLE001
                logger.exception("back_source_probe_failed", extra={"source": source.name})
                continue

            if not active:
                continue

            try:
                source.deactivate()
            except Exception:  # noqa: BLE001
                # Still consumed: the press was aimed at this layer.
                logger.exception("back_source_dismiss_failed", extra={"source": source.name})
            else:
                logger.debug("back_signal_handled", extra={"source": source.name})
            return True

        logger.debug("back_signal_unhandled")
        return False

    def attach(self, host: HostBridge) -> None:
        if self._host is not None:
            logger.warning("back_handler_already_attached")
            return
        host.set_back_handler(self.handle_back_signal)
        self._host = host
        logger.info("back_handler_attached", extra={"sources": self.source_names})

    def detach(self) -> None:
        if self._host is None:
            return
        host, self._host = self._host, None
        host.clear_back_handler()
        logger.info("back_handler_detached")
