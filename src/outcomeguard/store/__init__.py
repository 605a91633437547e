"""Shared key-value state stores."""

from outcomeguard.store.base import StateStore
from outcomeguard.store.duckdb_store import DuckDBStore
from outcomeguard.store.memory import MemoryStore

__all__ = ["DuckDBStore", "MemoryStore", "StateStore"]
