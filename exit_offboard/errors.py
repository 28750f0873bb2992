"""Exceptions shared across the offboarding pipeline."""
from __future__ import annotations


class OffboardError(RuntimeError):
    """Base exception for offboarding failures."""


class FatalError(OffboardError):
    """Raised when the run cannot continue (connection or listing failure)."""


__all__ = ["OffboardError", "FatalError"]
