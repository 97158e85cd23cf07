"""Host platform seam.

The embedding host (desktop shell or the Android wrapper) owns the physical
back button and window visibility. The core never reaches for globals on it;
it registers and deregisters callbacks through ``HostBridge``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol


logger = logging.getLogger(__name__)

BackHandler = Callable[[], bool]
VisibilityListener = Callable[[bool], None]


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    os_name: str = "unknown"
    is_mobile: bool = False
    is_native_host: bool = False

    @property
    def wants_platform_integration(self) -> bool:
        return self.is_mobile and self.is_native_host


class HostBridge(Protocol):
    def set_back_handler(self, handler: BackHandler) -> None: ...

    def clear_back_handler(self) -> None: ...

    def add_visibility_listener(self, listener: VisibilityListener) -> None: ...

    def remove_visibility_listener(self, listener: VisibilityListener) -> None: ...


class InProcessHost:
    """A host that lives in the same process.

    ``press_back()`` mimics the native shell: ask the registered handler, and
    when nobody consumes the signal, minimize instead of closing.
    """

    def __init__(self) -> None:
        self._back_handler: BackHandler | None = None
        self._visibility_listeners: list[VisibilityListener] = []
        self.minimize_count = 0
        self.visible = True

    @property
    def has_back_handler(self) -> bool:
        return self._back_handler is not None

    @property
    def visibility_listener_count(self) -> int:
        return len(self._visibility_listeners)

    def set_back_handler(self, handler: BackHandler) -> None:
        self._back_handler = handler

    def clear_back_handler(self) -> None:
        self._back_handler = None

    def add_visibility_listener(self, listener: VisibilityListener) -> None:
        if listener not in self._visibility_listeners:
            self._visibility_listeners.append(listener)

    def remove_visibility_listener(self, listener: VisibilityListener) -> None:
        if listener in self._visibility_listeners:
            self._visibility_listeners.remove(listener)

    def press_back(self) -> bool:
        handled = bool(self._back_handler()) if self._back_handler is not None else False
        if not handled:
            self.minimize_count += 1
            logger.info("host_minimized", extra={"minimize_count": self.minimize_count})
        return handled

    def set_visible(self, visible: bool) -> None:
        if visible == self.visible:
            return
        self.visible = visible
        for listener in list(self._visibility_listeners):
            listener(visible)
