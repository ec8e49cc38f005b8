"""Exceptions raised by the analytics engine.

Only malformed input is exceptional. "Not enough data" is always signalled
with a value (``None``, an empty record, ``score=None``) instead.
"""


class AnalyticsError(Exception):
    """Base class for analytics engine errors."""


class ValidationError(AnalyticsError, ValueError):
    """A raw match field failed validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API responses."""
        return {"field": self.field, "message": self.message}


class RunCompletedError(AnalyticsError):
    """Attempted to append a match to a run that is already closed."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} is completed and cannot be modified")
