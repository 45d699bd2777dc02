"""Domain value objects for reviews and card updates."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class Rating(str, Enum):
    """Review outcome submitted by the user."""

    HARD = "Hard"
    GOOD = "Good"
    EASY = "Easy"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Rating"]:
        # Accept "good", "GOOD", " Good " from callbacks and the CLI
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return None


@dataclass(frozen=True)
class CardPatch:
    """Partial update for the mutable fields of a card.

    Only fields that are not ``None`` are applied. There is no
    ``id`` field: a card's identity never changes.
    """

    document_path: Optional[str] = None
    question: Optional[str] = None
    due_date: Optional[int] = None
    interval: Optional[float] = None
    ease: Optional[float] = None

    def values(self) -> Dict[str, Any]:
        """Return the present fields as a column -> value mapping."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.values()


@dataclass(frozen=True)
class ReviewState:
    """Scheduling state computed from a review."""

    interval: int
    ease: float
    due_date: int

    def to_patch(self) -> CardPatch:
        return CardPatch(
            due_date=self.due_date, interval=float(self.interval), ease=self.ease
        )
