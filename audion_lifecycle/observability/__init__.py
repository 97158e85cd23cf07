from __future__ import annotations

from audion_lifecycle.observability.logging import JsonFormatter, configure_logging

__all__ = ["JsonFormatter", "configure_logging"]
