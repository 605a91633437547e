"""GameKind, PeriodKey, PeriodState - period identity and lifecycle states."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from outcomeguard.errors import BetValidationError


class GameKind(str, Enum):
    """Game variant. Selects the outcome space and candidate-set strategy."""

    SMALL_DISCRETE = "wingo"
    TRIPLE_DICE = "k3"
    COMBINATORIAL5 = "5d"

    @classmethod
    def parse(cls, value: str | GameKind) -> GameKind:
        if isinstance(value, GameKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise BetValidationError(f"Unknown game kind: {value!r}") from None


class PeriodState(str, Enum):
    OPEN = "open"
    FROZEN = "frozen"
    SETTLED = "settled"


# Allowed duration classes (seconds) per game
DURATIONS: dict[GameKind, tuple[int, ...]] = {
    GameKind.SMALL_DISCRETE: (30, 60, 180, 300),
    GameKind.TRIPLE_DICE: (60, 180, 300, 600),
    GameKind.COMBINATORIAL5: (60, 180, 300, 600),
}


class PeriodKey(BaseModel):
    """Scope of all per-period state: (game, duration, timeline, period_id)."""

    model_config = ConfigDict(frozen=True)

    game: GameKind
    duration: int = Field(..., gt=0, description="Duration class in seconds")
    timeline: str = "default"
    period_id: str = Field(..., min_length=1)

    @classmethod
    def build(cls, game: str | GameKind, duration: int, timeline: str, period_id: str) -> PeriodKey:
        """Validate and build a key. Raises BetValidationError for unknown game or duration."""
        kind = GameKind.parse(game)
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            raise BetValidationError(f"Invalid duration: {duration!r}") from None
        if duration not in DURATIONS[kind]:
            raise BetValidationError(
                f"Duration {duration}s not offered for {kind.value}; choose from {list(DURATIONS[kind])}"
            )
        timeline = (timeline or "default").strip()
        period_id = (period_id or "").strip()
        if not period_id or not timeline or ":" in timeline or ":" in period_id:
            raise BetValidationError("timeline and period_id must be non-empty and must not contain ':'")
        return cls(game=kind, duration=duration, timeline=timeline, period_id=period_id)

    @property
    def scope(self) -> str:
        """Storage scope suffix: <game>:<duration>:<timeline>:<period_id>."""
        return f"{self.game.value}:{self.duration}:{self.timeline}:{self.period_id}"

    def __str__(self) -> str:
        return self.scope
