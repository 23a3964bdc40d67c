"""
Exception hierarchy for description scoring and parameter training.

Every error raised on purpose by this package derives from HrdError and
carries a ``details`` dict with the accession(s) and values involved.
"""

from __future__ import annotations

from typing import Any


class HrdError(Exception):
    """Base exception for all hrd_evolved errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __reduce__(self):
        # keep details when errors cross process boundaries
        return (self.__class__, (self.message, self.details))

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class ConfigurationError(HrdError):
    """Invalid or inconsistent trainer configuration."""


class ParameterRangeError(HrdError):
    """A parameter value lies outside its configured range."""


class MissingDataError(HrdError):
    """An entity or candidate lacks a record required for scoring."""


class ReferenceDataError(HrdError):
    """Reference description or annotations are missing or unusable."""


class TrainingAborted(HrdError):
    """Fitness evaluation failed; the whole training run is invalid."""
