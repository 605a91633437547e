"""Result - chosen outcome for a settled period plus derived attributes."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from outcomeguard.errors import InvariantViolation
from outcomeguard.models.game import GameKind, PeriodKey
from outcomeguard.models.outcome import DiceOutcome, FiveDigitOutcome, NumberOutcome

Branch = Literal["random", "protected", "lowest_liability"]


def outcome_from_digits(game: GameKind, digits: tuple[int, ...] | list[int]) -> Any:
    """Build the outcome object for a game from its digits."""
    digits = tuple(digits)
    if game is GameKind.SMALL_DISCRETE and len(digits) == 1:
        return NumberOutcome(*digits)
    if game is GameKind.TRIPLE_DICE and len(digits) == 3:
        return DiceOutcome(*digits)
    if game is GameKind.COMBINATORIAL5 and len(digits) == 5:
        return FiveDigitOutcome(*digits)
    raise InvariantViolation(f"{len(digits)} digits do not form a {game.value} outcome")


class Result(BaseModel):
    """Immutable outcome of one period."""

    model_config = ConfigDict(frozen=True)

    period: PeriodKey
    outcome_key: str
    digits: tuple[int, ...]
    attributes: dict[str, Any] = Field(default_factory=dict)
    branch: Branch
    protection_active: bool
    unique_users: int = 0
    seed: int | None = None
    liability: int = Field(0, ge=0, description="Total liability owed on this outcome (minor units)")
    created_at: int | None = None  # ms epoch

    def outcome(self) -> Any:
        return outcome_from_digits(self.period.game, self.digits)

    def verify(self) -> Result:
        """Recompute attributes from digits; raise InvariantViolation on any disagreement."""
        outcome = self.outcome()
        if outcome.key != self.outcome_key:
            raise InvariantViolation(f"outcome_key {self.outcome_key!r} != digits {self.digits}")
        expected = outcome.attributes()
        if expected != self.attributes:
            raise InvariantViolation(
                f"Result attributes disagree with digits for {self.period}: {self.attributes} != {expected}"
            )
        return self
