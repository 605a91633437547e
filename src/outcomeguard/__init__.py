"""OutcomeGuard - period outcome selection and exposure tracking for lottery/dice games."""

__version__ = "0.1.0"
