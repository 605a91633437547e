"""Per-period exposure tracking: ledger, zero-exposure candidates, participation."""

from outcomeguard.exposure.candidates import CandidateSetStats, CandidateSetTracker
from outcomeguard.exposure.ledger import ExposureLedger
from outcomeguard.exposure.participation import ParticipationGate

__all__ = ["CandidateSetStats", "CandidateSetTracker", "ExposureLedger", "ParticipationGate"]
