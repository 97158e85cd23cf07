"""Durable boolean flags.

The lifecycle core persists exactly one thing: whether the cover migration has
completed cleanly. It only needs a string-keyed boolean store, so that is the
whole interface. ``JsonFileFlagStore`` keeps the flags in a small JSON object
on disk and replaces the file atomically on every write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)


class FlagStore(Protocol):
    def get(self, key: str) -> bool: ...

    def set(self, key: str, value: bool) -> None: ...


class MemoryFlagStore:
    """Process-local store; used by tests and as a throwaway default."""

    def __init__(self, initial: dict[str, bool] | None = None) -> None:
        self._flags: dict[str, bool] = dict(initial or {})
        self.writes: list[tuple[str, bool]] = []

    def get(self, key: str) -> bool:
        return bool(self._flags.get(key, False))

    def set(self, key: str, value: bool) -> None:
        self._flags[key] = bool(value)
        self.writes.append((key, bool(value)))


class JsonFileFlagStore:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, object]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}

        try:
            text = raw.decode("utf-8")
            data = json.loads(text) if text.strip() else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            # A corrupt file reads as "nothing set": the worst case is one extra migration run.
            logger.warning("flag_store_corrupt", extra={"path": str(self._path)})
            return {}

        if not isinstance(data, dict):
            logger.warning("flag_store_not_object", extra={"path": str(self._path)})
            return {}
        return data

    def get(self, key: str) -> bool:
        return self._read().get(key) is True

    def set(self, key: str, value: bool) -> None:
        data = self._read()
        data[key] = bool(value)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".flags-", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

        logger.debug("flag_store_write", extra={"key": key, "value": bool(value), "path": str(self._path)})
