"""Deterministic seed from a period identifier (FNV-1a, 32-bit)."""

from __future__ import annotations

FNV32_OFFSET = 0x811C9DC5
FNV32_PRIME = 0x01000193


def fnv1a_32(text: str) -> int:
    h = FNV32_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV32_PRIME) & 0xFFFFFFFF
    return h


def period_seed(period_id: str) -> int:
    """Stable, non-negative seed. Depends only on period metadata, never on bets."""
    return fnv1a_32(period_id)
