"""Bet - immutable once ingested; liability in integer minor units."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from outcomeguard.models.predicate import Predicate


def liability_for(stake: int, payout_multiplier: Decimal) -> int:
    """stake x multiplier rounded half-up to a whole minor unit."""
    return int((Decimal(stake) * payout_multiplier).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class Bet(BaseModel):
    """One wager on a predicate. Stake in minor units (e.g. cents)."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    predicate: Predicate
    stake: int = Field(..., gt=0)
    payout_multiplier: Decimal = Field(..., ge=1)

    @field_validator("payout_multiplier", mode="before")
    @classmethod
    def _no_float_rounding(cls, v):
        # Route floats through str so 1.96 stays 1.96 instead of its binary expansion
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @property
    def liability(self) -> int:
        return liability_for(self.stake, self.payout_multiplier)


class BetReceipt(BaseModel):
    """Acknowledgement returned by place_bet."""

    period: str
    predicate: str
    liability: int
    predicate_liability: int
    unique_users: int
    candidates_removed: int | None = None
