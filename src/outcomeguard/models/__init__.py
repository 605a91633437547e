"""Canonical schema - games, periods, outcomes, predicates, bets, results."""

from outcomeguard.models.bet import Bet, BetReceipt, liability_for
from outcomeguard.models.game import DURATIONS, GameKind, PeriodKey, PeriodState
from outcomeguard.models.outcome import DiceOutcome, FiveDigitOutcome, NumberOutcome
from outcomeguard.models.predicate import parse_predicate, parse_predicate_key
from outcomeguard.models.result import Result

__all__ = [
    "Bet",
    "BetReceipt",
    "liability_for",
    "DURATIONS",
    "GameKind",
    "PeriodKey",
    "PeriodState",
    "NumberOutcome",
    "DiceOutcome",
    "FiveDigitOutcome",
    "parse_predicate",
    "parse_predicate_key",
    "Result",
]
