"""Custom exception hierarchy for the StarQuest reporting package."""

from __future__ import annotations


class StarQuestError(Exception):
    """Base class for all StarQuest specific errors."""


class FamilyNotFoundError(StarQuestError):
    """Raised when the family record for a report cannot be found."""


class UpstreamFetchError(StarQuestError):
    """Raised when a read against the activity store fails."""


class InvalidPeriodError(StarQuestError, ValueError):
    """Raised when a period type or period boundary cannot be parsed."""
