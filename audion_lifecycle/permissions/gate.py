from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable


logger = logging.getLogger(__name__)


class PermissionState(str, Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class PermissionGate:
    """Asks the host for a capability and offers one settings round-trip on denial.

    ``open_settings_and_recheck()`` is a single retry, not a poll: after the
    user comes back from the host settings screen we check once and stop.
    """

    def __init__(
        self,
        *,
        request_capability: Callable[[], Awaitable[bool]],
        open_host_settings: Callable[[], Awaitable[None]],
        capability: str = "audio",
        recheck_delay_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._request_capability = request_capability
        self._open_host_settings = open_host_settings
        self._capability = capability
        self._recheck_delay_s = float(recheck_delay_s)
        self._sleep = sleep
        self._state = PermissionState.UNKNOWN

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def capability(self) -> str:
        return self._capability

    async def check_and_request(self) -> PermissionState:
        try:
            granted = bool(await self._request_capability())
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "permission_request_failed",
                extra={"capability": self._capability, "error": str(exc)},
            )
            granted = False

        self._state = PermissionState.GRANTED if granted else PermissionState.DENIED
        logger.info("permission_checked", extra={"capability": self._capability, "state": self._state.value})
        return self._state

    async def open_settings_and_recheck(self) -> PermissionState:
        if self._state is PermissionState.GRANTED:
            return self._state

        try:
            await self._open_host_settings()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "permission_settings_open_failed",
                extra={"capability": self._capability, "error": str(exc)},
            )
            return self._state

        # Give the user time to leave the host settings screen.
        await self._sleep(self._recheck_delay_s)
        return await self.check_and_request()
