"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    store: bool = True
    games: list[str] = Field(default_factory=list)


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. invalid_bet, period_state")


# --- Bets ---
class PlaceBetRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    bet_type: str = Field(..., description="e.g. NUMBER, COLOR, SUM_SIZE, POSITION_A")
    bet_value: str | int = Field(..., description="Wire value, e.g. 7, red, big, 5")
    stake: int = Field(..., description="Stake in minor units, already debited by the wallet layer")
    payout_multiplier: str | float = Field(..., description="Decimal multiplier >= 1")


# --- Monitoring ---
class ExposureResponse(BaseModel):
    period: str
    entries: dict[str, int] = Field(default_factory=dict, description="Predicate key -> liability")
    total_liability: int = 0


class TransitionResponse(BaseModel):
    period: str
    state: str
