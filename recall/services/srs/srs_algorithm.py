"""
SRS Algorithm Implementation
Calculates the next review interval, ease and due date from a rating.
"""

import random
import time
from typing import Any, Optional

from ...models.card import DEFAULT_EASE, DEFAULT_INTERVAL
from ...models.value_objects import Rating, ReviewState

MIN_EASE = 1.3
MIN_INTERVAL = 1

HARD_EASE_PENALTY = 0.2
EASY_EASE_BONUS = 0.15

# First successful review of a new or just-reset card
GOOD_FIRST_INTERVAL = 3
EASY_FIRST_INTERVAL = 5

# Spreads out cards that were reviewed together
FUZZ_RANGE = (0.95, 1.05)

DAY_MS = 24 * 60 * 60 * 1000


def _field(current: Any, name: str) -> Optional[float]:
    if isinstance(current, dict):
        return current.get(name)
    return getattr(current, name, None)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def calculate_next_review(
    current: Any,
    rating: Rating,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> ReviewState:
    """
    Calculate the next review state for a card.

    Args:
        current: Card (or mapping) with optional ``interval`` and ``ease``
        rating: Hard, Good or Easy
        now: Reference time in ms since epoch (defaults to the current time)
        rng: Random source for the interval fuzz (defaults to ``random``)

    Returns:
        ReviewState with the new interval (days), ease and due date (ms)
    """
    rating = Rating(rating)
    ease = _field(current, "ease")
    ease = DEFAULT_EASE if ease is None else ease

    if rating is Rating.HARD:
        interval = 1.0
        ease = max(MIN_EASE, ease - HARD_EASE_PENALTY)
    else:
        current_interval = _field(current, "interval")
        current_interval = DEFAULT_INTERVAL if current_interval is None else current_interval

        if current_interval <= 1:
            interval = GOOD_FIRST_INTERVAL if rating is Rating.GOOD else EASY_FIRST_INTERVAL
        else:
            interval = current_interval * ease

        if rating is Rating.EASY:
            ease += EASY_EASE_BONUS

    ease = max(MIN_EASE, ease)

    fuzz = (rng or random).uniform(*FUZZ_RANGE)
    new_interval = max(MIN_INTERVAL, round(interval * fuzz))

    if now is None:
        now = now_ms()
    due_date = now + new_interval * DAY_MS

    return ReviewState(interval=new_interval, ease=ease, due_date=due_date)
