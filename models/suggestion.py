"""Suggestion value objects produced by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SuggestionPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    SuggestionPriority.HIGH: 0,
    SuggestionPriority.MEDIUM: 1,
    SuggestionPriority.LOW: 2,
}


class SuggestionCategory(str, Enum):
    """Which weather concern a suggestion addresses.

    Assigned by the rule that produced the suggestion so presentation code
    never has to guess it from the icon or wording.
    """

    PRECIPITATION = "precipitation"
    SUN = "sun"
    WARMTH = "warmth"
    HEAT = "heat"
    WIND = "wind"
    LAYERING = "layering"
    TRACTION = "traction"


@dataclass(frozen=True)
class Suggestion:
    """One short advisory with a symbolic icon tag."""

    text: str
    icon: str
    priority: SuggestionPriority
    category: SuggestionCategory


__all__ = ["Suggestion", "SuggestionPriority", "SuggestionCategory"]
