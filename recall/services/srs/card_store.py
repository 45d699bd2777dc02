"""
Card Store

Keeps every card in an in-memory SQLite index, which is the source of truth
between flushes, and checkpoints the whole table to durable storage:

- after a quiet period following the last mutation (``flush_delay``)
- no later than ``flush_max_wait`` after the first unflushed mutation
- on explicit ``flush()`` and on ``close()``

If initialisation fails the store stays not-ready for its lifetime and every
operation returns an empty result instead of raising.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ...core.database import (
    create_memory_engine,
    create_schema,
    create_session_factory,
)
from ...domain.errors import StorageError
from ...domain.ports.byte_storage import ByteStorage
from ...models.card import DEFAULT_EASE, DEFAULT_INTERVAL, Card
from ...models.value_objects import CardPatch
from ...utils.logging import get_recall_logger, log_flush_failure
from ...utils.retry import with_retry
from .snapshot import SnapshotRow, decode_snapshot, encode_snapshot
from .srs_algorithm import now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CardStore:
    """
    Durable, queryable collection of cards.

    Features:
    - Upsert / partial update / delete by id
    - Bulk delete and rename by document path
    - Due, per-document and document-list queries
    - Debounced whole-snapshot persistence with at most one flush in flight
    """

    def __init__(
        self,
        storage: ByteStorage,
        snapshot_name: str = "srs.db",
        flush_delay: float = 2.0,  # Seconds to wait after last mutation
        flush_max_wait: float = 30.0,  # Max seconds a mutation stays unflushed
        flush_retry_attempts: int = 3,
        flush_retry_delay: float = 0.5,
    ):
        self.storage = storage
        self.snapshot_name = snapshot_name
        self.flush_delay = flush_delay
        self.flush_max_wait = flush_max_wait
        self.flush_retry_attempts = flush_retry_attempts
        self.flush_retry_delay = flush_retry_delay

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._lock = asyncio.Lock()
        self._ready = False

        # Debounce timer and flush coordination
        self._timer_task: Optional[asyncio.Task] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._flush_requested = False
        self._dirty_since: Optional[float] = None

        self.last_flush_error: Optional[BaseException] = None
        self.flush_count = 0

        self._slog = get_recall_logger(__name__)

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_dirty(self) -> bool:
        """True while some mutation has not reached durable storage."""
        return self._dirty_since is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> bool:
        """Load the snapshot into a fresh in-memory index.

        Returns:
            True if the store is ready.
        """
        if self._ready:
            return True

        engine: Optional[AsyncEngine] = None
        try:
            data = await self._read_snapshot()
            rows = await asyncio.to_thread(decode_snapshot, data) if data else []

            engine = create_memory_engine()
            await create_schema(engine)
            session_factory = create_session_factory(engine)

            if rows:
                async with session_factory() as session:
                    session.add_all([self._row_to_card(row) for row in rows])
                    await session.commit()

        except Exception as e:
            logger.error(
                f"Fatal error during card store initialization: {e}", exc_info=True
            )
            if engine is not None:
                await engine.dispose()
            self._ready = False
            return False

        self._engine = engine
        self._session_factory = session_factory
        self._ready = True
        logger.info(f"Card store is ready ({len(rows)} cards loaded)")
        return True

    async def close(self) -> None:
        """Flush pending changes, then release the in-memory index."""
        if not self._ready:
            return

        try:
            self._cancel_timer()
            await self.flush()
        finally:
            self._ready = False
            self._cancel_timer()
            async with self._lock:
                engine = self._engine
                self._engine = None
                self._session_factory = None
            if engine is not None:
                await engine.dispose()
            logger.info("Card store closed")

    async def __aenter__(self) -> "CardStore":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _read_snapshot(self) -> Optional[bytes]:
        """Read the persisted snapshot; unreadable storage means empty."""
        try:
            data = await self.storage.read(self.snapshot_name)
        except (StorageError, OSError) as e:
            logger.warning(
                f"Could not read snapshot {self.snapshot_name}, starting empty: {e}"
            )
            return None
        if not data:
            logger.info(f"No snapshot found at {self.snapshot_name}, creating schema")
            return None
        return data

    @staticmethod
    def _row_to_card(row: SnapshotRow) -> Card:
        return Card(
            id=row.id,
            document_path=row.document_path,
            question=row.question,
            due_date=row.due_date,
            interval=DEFAULT_INTERVAL if row.interval is None else row.interval,
            ease=DEFAULT_EASE if row.ease is None else row.ease,
        )

    @staticmethod
    def _card_to_row(card: Card) -> SnapshotRow:
        return SnapshotRow(
            id=card.id,
            document_path=card.document_path,
            question=card.question,
            due_date=card.due_date,
            interval=card.interval,
            ease=card.ease,
        )

    async def _run(
        self, work: Callable[[AsyncSession], Awaitable[T]], default: T
    ) -> T:
        """Run *work* in a session under the store lock, or return *default*."""
        if not self._ready:
            return default

        async with self._lock:
            if not self._ready or self._session_factory is None:
                return default
            async with self._session_factory() as session:
                try:
                    return await work(session)
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(f"Card store operation failed: {e}", exc_info=True)
                    return default

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def upsert(self, card_id: str, document_path: str, question: str) -> None:
        """Insert a card with default scheduling, or update only its question."""

        async def work(session: AsyncSession) -> bool:
            card = await session.get(Card, card_id)
            if card is None:
                session.add(
                    Card(
                        id=card_id,
                        document_path=document_path,
                        question=question,
                        due_date=now_ms(),
                        interval=DEFAULT_INTERVAL,
                        ease=DEFAULT_EASE,
                    )
                )
            elif card.question != question:
                card.question = question
            else:
                return False
            await session.commit()
            return True

        if await self._run(work, False):
            self._mark_dirty()

    async def update(self, card_id: str, patch: CardPatch) -> bool:
        """Merge the present fields of *patch* into the card."""
        if patch.is_empty():
            return False
        values = patch.values()

        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                update(Card).where(Card.id == card_id).values(**values)
            )
            await session.commit()
            return result.rowcount > 0

        changed = await self._run(work, False)
        if changed:
            self._mark_dirty()
        return changed

    async def delete(self, card_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(delete(Card).where(Card.id == card_id))
            await session.commit()
            return result.rowcount > 0

        deleted = await self._run(work, False)
        if deleted:
            self._mark_dirty()
        return deleted

    async def delete_all_for_document(self, document_path: str) -> int:
        """Remove every card of *document_path* in one statement."""

        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                delete(Card).where(Card.document_path == document_path)
            )
            await session.commit()
            return result.rowcount

        count = await self._run(work, 0)
        if count:
            logger.info(f"Deleted {count} cards for {document_path}")
            self._mark_dirty()
        return count

    async def rename_document(self, old_path: str, new_path: str) -> int:
        """Move every card of *old_path* to *new_path* in one statement."""
        if old_path == new_path:
            return 0

        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                update(Card)
                .where(Card.document_path == old_path)
                .values(document_path=new_path)
            )
            await session.commit()
            return result.rowcount

        count = await self._run(work, 0)
        if count:
            logger.info(f"Renamed {count} cards: {old_path} -> {new_path}")
            self._mark_dirty()
        return count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, card_id: str) -> Optional[Card]:
        async def work(session: AsyncSession) -> Optional[Card]:
            return await session.get(Card, card_id)

        return await self._run(work, None)

    async def list_due(self, as_of: Optional[int] = None) -> List[Card]:
        """Cards with ``due_date <= as_of`` (default: now), earliest first."""
        if as_of is None:
            as_of = now_ms()

        async def work(session: AsyncSession) -> List[Card]:
            result = await session.execute(
                select(Card)
                .where(Card.due_date.is_not(None), Card.due_date <= as_of)
                .order_by(Card.due_date, Card.id)
            )
            return list(result.scalars().all())

        return await self._run(work, [])

    async def list_for_document(self, document_path: str) -> List[Card]:
        async def work(session: AsyncSession) -> List[Card]:
            result = await session.execute(
                select(Card)
                .where(Card.document_path == document_path)
                .order_by(Card.id)
            )
            return list(result.scalars().all())

        return await self._run(work, [])

    async def list_tracked_documents(self) -> List[str]:
        """Distinct document paths that own at least one card, sorted."""

        async def work(session: AsyncSession) -> List[str]:
            result = await session.execute(
                select(Card.document_path).distinct().order_by(Card.document_path)
            )
            return list(result.scalars().all())

        return await self._run(work, [])

    async def list_all(self) -> List[Card]:
        async def work(session: AsyncSession) -> List[Card]:
            result = await session.execute(select(Card).order_by(Card.id))
            return list(result.scalars().all())

        return await self._run(work, [])

    async def count(self) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(select(func.count(Card.id)))
            return result.scalar() or 0

        return await self._run(work, 0)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _mark_dirty(self) -> None:
        """Record a mutation and re-arm the debounce timer."""
        now = asyncio.get_running_loop().time()
        if self._dirty_since is None:
            self._dirty_since = now

        deadline = min(now + self.flush_delay, self._dirty_since + self.flush_max_wait)
        self._reset_timer(max(0.0, deadline - now))

    def _reset_timer(self, delay: float) -> None:
        """Reset the flush timer."""
        self._cancel_timer()
        self._timer_task = asyncio.create_task(self._timer_callback(delay))

    def _cancel_timer(self) -> None:
        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    async def _timer_callback(self, delay: float, rearm: bool = True) -> None:
        """Timer callback - flush after the quiet period.

        A failed flush re-arms the timer once so the changes are retried
        without waiting for another mutation.
        """
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            # Timer was reset (new mutation arrived)
            return

        # Detach so a later mutation cannot cancel the flush itself
        if self._timer_task is asyncio.current_task():
            self._timer_task = None

        try:
            ok = await self.flush()
        except Exception as e:
            logger.error(f"Error in flush timer callback: {e}", exc_info=True)
            return

        if ok or not rearm or not self._ready:
            return
        if self.is_dirty and self._timer_task is None:
            logger.warning(f"Flush failed, retrying in {self.flush_delay}s")
            self._timer_task = asyncio.create_task(
                self._timer_callback(self.flush_delay, rearm=False)
            )

    async def flush(self) -> bool:
        """Write the whole card table to durable storage.

        A call made while a flush is in flight schedules exactly one
        follow-up flush and waits for it.

        Returns:
            True if the last write succeeded.
        """
        if not self._ready:
            return False

        if self._flush_task is not None and not self._flush_task.done():
            self._flush_requested = True
        else:
            self._flush_requested = False
            self._flush_task = asyncio.create_task(self._run_flushes())

        return await asyncio.shield(self._flush_task)

    async def _run_flushes(self) -> bool:
        ok = await self._flush_once()
        while self._flush_requested:
            self._flush_requested = False
            ok = await self._flush_once()
        return ok

    async def _flush_once(self) -> bool:
        async with self._lock:
            if self._session_factory is None:
                return False
            try:
                async with self._session_factory() as session:
                    result = await session.execute(select(Card).order_by(Card.id))
                    rows = [self._card_to_row(card) for card in result.scalars()]
            except SQLAlchemyError as e:
                logger.error(f"Could not read cards for flush: {e}", exc_info=True)
                return False
            dirty_since = self._dirty_since
            self._dirty_since = None

        logger.info(f"Persisting {len(rows)} cards to {self.snapshot_name}...")
        try:
            data = await asyncio.to_thread(encode_snapshot, rows)
            await with_retry(
                self.storage.write,
                self.snapshot_name,
                data,
                attempts=self.flush_retry_attempts,
                base_delay=self.flush_retry_delay,
            )
        except Exception as e:
            self.last_flush_error = e
            # Keep the original dirty time so max-wait still applies on retry
            if dirty_since is not None and (
                self._dirty_since is None or dirty_since < self._dirty_since
            ):
                self._dirty_since = dirty_since
            log_flush_failure(
                e,
                {"snapshot": self.snapshot_name, "cards": len(rows)},
                self._slog,
            )
            return False

        self.last_flush_error = None
        self.flush_count += 1
        logger.info(f"Snapshot persisted ({len(data)} bytes)")
        return True
