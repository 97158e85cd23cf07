from __future__ import annotations

from audion_lifecycle.navigation.back import (
    BackNavigationStateMachine,
    CallbackSource,
    DismissibleSource,
    ViewHistory,
)

__all__ = ["BackNavigationStateMachine", "CallbackSource", "DismissibleSource", "ViewHistory"]
