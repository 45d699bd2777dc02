"""
SRS Document Sync
Keeps the card store consistent with the headings of tracked documents
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ...core.typed_config import TrackingConfig
from ...domain.errors import RecallError
from ...domain.ports.document_source import DocumentSource
from ...domain.repositories.card_repository import CardRepository
from ...utils.logging import get_recall_logger, log_sync_summary
from .card_identity import generate_card_id

logger = logging.getLogger(__name__)


class StalePolicy(str, Enum):
    """What to do with cards whose heading disappeared from the document."""

    RETAIN = "retain"
    DELETE = "delete"


@dataclass
class SyncResult:
    """Outcome of reconciling one document."""

    document_path: str
    cards: int = 0
    stale_ids: List[str] = field(default_factory=list)
    deleted: int = 0
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


async def sync_document(
    store: CardRepository,
    source: DocumentSource,
    document_path: str,
    stale_policy: StalePolicy = StalePolicy.RETAIN,
) -> SyncResult:
    """Upsert one card per heading of *document_path*.

    Scheduling state of existing cards is never touched. Cards whose heading
    is gone are reported in ``stale_ids`` and removed only under
    ``StalePolicy.DELETE``.
    """
    result = SyncResult(document_path=document_path)

    try:
        headings = await source.get_headings(document_path)
    except (RecallError, OSError) as e:
        logger.error(f"Error reading headings of {document_path}: {e}")
        result.error = str(e)
        return result

    if headings is None:
        logger.debug(f"Document not available, skipping: {document_path}")
        result.skipped = True
        return result

    existing_ids = {card.id for card in await store.list_for_document(document_path)}

    current_ids: List[str] = []
    for heading in headings:
        card_id = generate_card_id(document_path, heading.text)
        if card_id in current_ids:
            # Same heading text twice in one document is one card
            continue
        current_ids.append(card_id)
        await store.upsert(card_id, document_path, heading.text)

    result.cards = len(current_ids)
    result.stale_ids = sorted(existing_ids.difference(current_ids))

    if result.stale_ids and stale_policy == StalePolicy.DELETE:
        for card_id in result.stale_ids:
            if await store.delete(card_id):
                result.deleted += 1
        logger.info(f"Removed {result.deleted} stale cards from {document_path}")

    logger.debug(
        f"Indexed {document_path}: {result.cards} cards, "
        f"{len(result.stale_ids)} stale"
    )
    return result


async def sync_tracked_documents(
    store: CardRepository,
    source: DocumentSource,
    tracking: TrackingConfig,
    stale_policy: StalePolicy = StalePolicy.RETAIN,
    concurrency: int = 1,
) -> Dict[str, int]:
    """Re-index every tracked document.

    Returns:
        Counters: documents, synced, skipped, errors, cards, stale.
    """
    stats = {
        "documents": 0,
        "synced": 0,
        "skipped": 0,
        "errors": 0,
        "cards": 0,
        "stale": 0,
    }
    started = time.monotonic()
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run_one(path: str) -> SyncResult:
        async with semaphore:
            return await sync_document(store, source, path, stale_policy)

    results = await asyncio.gather(*(run_one(p) for p in tracking.tracked_files))

    for result in results:
        stats["documents"] += 1
        if result.error is not None:
            stats["errors"] += 1
        elif result.skipped:
            stats["skipped"] += 1
        else:
            stats["synced"] += 1
        stats["cards"] += result.cards
        stats["stale"] += len(result.stale_ids)

    log_sync_summary(stats, time.monotonic() - started, get_recall_logger(__name__))
    return stats
