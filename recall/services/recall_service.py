"""
Recall Service

Application facade tying the card store, the reconciler and the tracking
list together. It reacts to document lifecycle events (modify, rename,
delete), keeps the tracking list on disk, and serves the review workflow.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..core.config import Settings
from ..core.typed_config import TrackingConfig
from ..core.typed_config_loader import load_tracking_config, save_tracking_config
from ..domain.errors import RecallError
from ..domain.ports.document_source import DocumentSource
from ..infrastructure.file_storage import LocalFileStorage
from ..infrastructure.vault_document_source import VaultDocumentSource
from ..models.card import Card
from ..models.value_objects import Rating, ReviewState
from .srs.card_store import CardStore
from .srs.srs_algorithm import calculate_next_review
from .srs.srs_sync import StalePolicy, SyncResult, sync_document, sync_tracked_documents

logger = logging.getLogger(__name__)


class RecallService:
    """Service for indexing tracked documents and reviewing their cards."""

    def __init__(
        self,
        store: CardStore,
        source: DocumentSource,
        tracking_path: Optional[Path] = None,
        tracking: Optional[TrackingConfig] = None,
        stale_policy: StalePolicy = StalePolicy.RETAIN,
        index_concurrency: int = 1,
    ):
        self.store = store
        self.source = source
        self.tracking_path = Path(tracking_path) if tracking_path else None
        self.tracking = tracking
        self.stale_policy = stale_policy
        self.index_concurrency = index_concurrency

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecallService":
        storage = LocalFileStorage(settings.data_root)
        store = CardStore(
            storage,
            snapshot_name=settings.snapshot_name,
            flush_delay=settings.flush_delay,
            flush_max_wait=settings.flush_max_wait,
            flush_retry_attempts=settings.flush_retry_attempts,
            flush_retry_delay=settings.flush_retry_delay,
        )
        return cls(
            store=store,
            source=VaultDocumentSource(settings.vault_root),
            tracking_path=settings.tracking_path,
            stale_policy=StalePolicy(settings.stale_card_policy),
            index_concurrency=settings.index_concurrency,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, reindex: bool = True) -> bool:
        """Open the store and, if it is ready, re-index tracked documents.

        Returns:
            True if the store is ready. False means degraded mode: every
            query answers empty and nothing is persisted.
        """
        if self.tracking is None:
            if self.tracking_path is not None:
                self.tracking = await asyncio.to_thread(
                    load_tracking_config, self.tracking_path
                )
            else:
                self.tracking = TrackingConfig()

        if not await self.store.init():
            logger.warning(
                "Card store failed to initialize; running without saved cards"
            )
            return False

        if reindex:
            await self.reindex_all()
        return True

    async def stop(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> "RecallService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def _tracking(self) -> TrackingConfig:
        if self.tracking is None:
            self.tracking = TrackingConfig()
        return self.tracking

    async def _save_tracking(self) -> None:
        if self.tracking_path is None:
            return
        try:
            await asyncio.to_thread(
                save_tracking_config, self._tracking(), self.tracking_path
            )
        except OSError as e:
            logger.error(f"Could not save tracking list to {self.tracking_path}: {e}")

    # ------------------------------------------------------------------
    # Tracking and document events
    # ------------------------------------------------------------------

    async def track_document(self, path: str) -> bool:
        """Start tracking *path* and index it.

        Returns:
            False if the document was already tracked.
        """
        tracking = self._tracking()
        if tracking.is_tracked(path):
            return False

        self.tracking = tracking.with_tracked(path)
        await self._save_tracking()
        await self.index_document(path)
        logger.info(f"Tracking {path}")
        return True

    async def untrack_document(self, path: str) -> bool:
        """Stop tracking *path* and delete its cards.

        Returns:
            False if the document was not tracked.
        """
        tracking = self._tracking()
        if not tracking.is_tracked(path):
            return False

        self.tracking = tracking.without_tracked(path)
        await self._save_tracking()
        removed = await self.store.delete_all_for_document(path)
        logger.info(f"Stopped tracking {path} ({removed} cards removed)")
        return True

    async def index_document(self, path: str) -> SyncResult:
        return await sync_document(self.store, self.source, path, self.stale_policy)

    async def handle_document_modified(self, path: str) -> Optional[SyncResult]:
        if not self._tracking().is_tracked(path):
            return None
        return await self.index_document(path)

    async def handle_document_renamed(self, old_path: str, new_path: str) -> int:
        """Follow a rename of a tracked document.

        Returns:
            Number of cards moved to the new path.
        """
        tracking = self._tracking()
        if not tracking.is_tracked(old_path):
            return 0

        self.tracking = tracking.with_renamed(old_path, new_path)
        await self._save_tracking()
        return await self.store.rename_document(old_path, new_path)

    async def handle_document_deleted(self, path: str) -> bool:
        return await self.untrack_document(path)

    async def reindex_all(self) -> Dict[str, int]:
        return await sync_tracked_documents(
            self.store,
            self.source,
            self._tracking(),
            stale_policy=self.stale_policy,
            concurrency=self.index_concurrency,
        )

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def review_card(self, card_id: str, rating: Rating) -> Optional[ReviewState]:
        """Schedule the next review of a card from a rating.

        Returns:
            The new scheduling state, or None for an unknown card.
        """
        card = await self.store.get(card_id)
        if card is None:
            logger.warning(f"Review for unknown card {card_id}")
            return None

        state = calculate_next_review(card, Rating(rating))
        await self.store.update(card_id, state.to_patch())
        logger.debug(
            f"Reviewed {card_id} as {Rating(rating).value}: "
            f"interval={state.interval} ease={state.ease:.2f}"
        )
        return state

    async def get_due_cards(self, as_of: Optional[int] = None) -> List[Card]:
        return await self.store.list_due(as_of)

    async def get_cards_for_document(self, path: str) -> List[Card]:
        return await self.store.list_for_document(path)

    async def get_documents_with_cards(self) -> List[str]:
        return await self.store.list_tracked_documents()

    def get_tracked_documents(self) -> List[str]:
        return list(self._tracking().tracked_files)

    async def get_card_content(self, card: Card) -> Optional[str]:
        """Section text under the card's heading, or None if unavailable."""
        try:
            return await self.source.get_section(card.document_path, card.question)
        except (RecallError, OSError) as e:
            logger.error(f"Could not read content for card {card.id}: {e}")
            return None
