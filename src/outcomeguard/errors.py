"""Error taxonomy shared by ingestion, selection and settlement."""

from __future__ import annotations


class OutcomeGuardError(Exception):
    """Base for all domain errors."""

    code = "error"


class BetValidationError(OutcomeGuardError):
    """Malformed predicate, bad stake or multiplier, unknown game kind or duration. Never recorded."""

    code = "invalid_bet"


class StateUnavailable(OutcomeGuardError):
    """Shared store or combinations table unreachable. The operation was aborted with no partial update."""

    code = "state_unavailable"


class InvariantViolation(OutcomeGuardError):
    """Programming error: derived data disagrees with its source. Never corrected silently."""

    code = "invariant_violation"


class ImpossibleSelection(OutcomeGuardError):
    """No outcome could be produced for a period."""

    code = "impossible_selection"


class PeriodStateError(OutcomeGuardError):
    """Operation not allowed in the period's current state (e.g. bet after freeze)."""

    code = "period_state"


class ResultAlreadyRecorded(PeriodStateError):
    """A Result already exists for this period."""

    code = "result_exists"
