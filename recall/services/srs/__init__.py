"""
SRS (Spaced Repetition System) Module
Heading-level spaced repetition for Markdown vault documents
"""

from .card_identity import generate_card_id
from .card_store import CardStore
from .srs_algorithm import calculate_next_review
from .srs_sync import StalePolicy, SyncResult, sync_document, sync_tracked_documents

__all__ = [
    "generate_card_id",
    "calculate_next_review",
    "CardStore",
    "StalePolicy",
    "SyncResult",
    "sync_document",
    "sync_tracked_documents",
]
