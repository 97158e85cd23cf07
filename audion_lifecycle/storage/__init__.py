from __future__ import annotations

from audion_lifecycle.storage.flags import FlagStore, JsonFileFlagStore, MemoryFlagStore

__all__ = ["FlagStore", "JsonFileFlagStore", "MemoryFlagStore"]
