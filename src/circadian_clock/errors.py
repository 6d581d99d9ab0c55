from __future__ import annotations


class DataIntegrityWarning(UserWarning):
    """Issued when input records are skipped for bad timestamps or metric values."""


class InvariantViolation(RuntimeError):
    """Raised when a caller hands the core a state valid inputs can never produce."""
