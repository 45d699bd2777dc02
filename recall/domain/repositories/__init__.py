from .card_repository import CardRepository

__all__ = ["CardRepository"]
