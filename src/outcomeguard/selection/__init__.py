"""Outcome selection."""

from outcomeguard.selection.engine import SelectionEngine
from outcomeguard.selection.seed import fnv1a_32, period_seed

__all__ = ["SelectionEngine", "fnv1a_32", "period_seed"]
