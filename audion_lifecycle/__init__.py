"""Audion application lifecycle coordinator.

Sequences startup, runs the one-time cover migration and arbitrates the
"back" signal across overlapping UI surfaces.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
