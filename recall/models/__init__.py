from .base import Base
from .card import DEFAULT_EASE, DEFAULT_INTERVAL, Card
from .value_objects import CardPatch, Rating, ReviewState

__all__ = [
    "Base",
    "Card",
    "CardPatch",
    "DEFAULT_EASE",
    "DEFAULT_INTERVAL",
    "Rating",
    "ReviewState",
]
