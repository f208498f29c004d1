"""
Error taxonomy for eligibility calculations.

Every failure names the offending input so the caller can point the user
at the field to fix. The engine never substitutes a default for a missing
financial input.
"""

from contextlib import contextmanager
from typing import Iterator, Optional


class EligibilityError(ValueError):
    """Base class for all eligibility engine failures."""

    kind = "eligibility_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message

    def to_dict(self) -> dict:
        """Structured failure for the calling application."""
        return {"error": self.kind, "field": self.field, "message": self.message}


class InvalidInput(EligibilityError):
    """Malformed or missing required field."""

    kind = "invalid_input"


class InsufficientData(EligibilityError):
    """Input is well-formed but lacks the data needed to compute a figure."""

    kind = "insufficient_data"


class UnsupportedState(EligibilityError):
    """No rule table exists for the requested state."""

    kind = "unsupported_state"


class UnsupportedProgram(EligibilityError):
    """The state has rule tables, but none for the requested program."""

    kind = "unsupported_program"


class StaleConfiguration(EligibilityError):
    """No effective-dated rule table covers the calculation date."""

    kind = "stale_configuration"


@contextmanager
def field_context(prefix: str) -> Iterator[None]:
    """Prefix the ``field`` of any eligibility error raised inside the block."""
    try:
        yield
    except EligibilityError as e:
        e.field = f"{prefix}.{e.field}" if e.field else prefix
        raise
