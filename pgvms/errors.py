from __future__ import annotations


class ValidationError(ValueError):
    """User-entered data failed a precondition. Nothing was written."""


class ForecastError(RuntimeError):
    """The demand-forecast collaborator failed or returned unusable data."""
