"""
Tests for document reconciliation.

Tests cover:
- One card per heading, ids derived from path and heading text
- Scheduling history survives re-indexing
- Stale cards under RETAIN and DELETE policies
- Skips and per-document errors
- Re-indexing every tracked document
"""

from unittest.mock import AsyncMock

from recall.core.typed_config import TrackingConfig
from recall.domain.errors import InvalidDocumentPath
from recall.models.value_objects import CardPatch
from recall.services.srs.card_identity import generate_card_id
from recall.services.srs.srs_sync import (
    StalePolicy,
    sync_document,
    sync_tracked_documents,
)

DOC = """---
tags: [biology]
---
# Cells

## What is a mitochondrion?
The powerhouse.

## What is a ribosome?
Protein factory.
"""


class TestSyncDocument:
    """Tests for sync_document."""

    async def test_creates_one_card_per_heading(self, store, source):
        source.documents["bio.md"] = DOC

        result = await sync_document(store, source, "bio.md")

        assert result.ok
        assert result.cards == 3
        cards = await store.list_for_document("bio.md")
        assert sorted(c.question for c in cards) == [
            "Cells",
            "What is a mitochondrion?",
            "What is a ribosome?",
        ]
        assert {c.id for c in cards} == {
            generate_card_id("bio.md", "Cells"),
            generate_card_id("bio.md", "What is a mitochondrion?"),
            generate_card_id("bio.md", "What is a ribosome?"),
        }

    async def test_reindex_preserves_scheduling(self, store, source):
        source.documents["bio.md"] = DOC
        await sync_document(store, source, "bio.md")
        card_id = generate_card_id("bio.md", "Cells")
        await store.update(card_id, CardPatch(interval=8, ease=2.2, due_date=99))

        await sync_document(store, source, "bio.md")

        card = await store.get(card_id)
        assert (card.interval, card.ease, card.due_date) == (8, 2.2, 99)

    async def test_duplicate_headings_are_one_card(self, store, source):
        source.documents["dup.md"] = "# Notes\ntext\n# Notes\nmore\n"

        result = await sync_document(store, source, "dup.md")

        assert result.cards == 1
        assert len(await store.list_for_document("dup.md")) == 1

    async def test_document_without_headings(self, store, source):
        source.documents["plain.md"] = "just text\n"

        result = await sync_document(store, source, "plain.md")

        assert result.ok
        assert result.cards == 0
        assert await store.list_for_document("plain.md") == []

    async def test_missing_document_is_skipped(self, store, source):
        await store.upsert("x", "gone.md", "Q")

        result = await sync_document(store, source, "gone.md")

        assert result.skipped is True
        assert result.error is None
        assert [c.id for c in await store.list_for_document("gone.md")] == ["x"]

    async def test_source_error_is_reported_not_raised(self, store):
        failing = AsyncMock()
        failing.get_headings.side_effect = InvalidDocumentPath("../etc/passwd")

        result = await sync_document(store, failing, "../etc/passwd")

        assert result.ok is False
        assert "escapes the vault" in result.error
        assert await store.list_all() == []

    async def test_os_error_is_reported(self, store):
        failing = AsyncMock()
        failing.get_headings.side_effect = PermissionError("denied")

        result = await sync_document(store, failing, "locked.md")

        assert result.error == "denied"


class TestStaleCards:
    """Cards whose heading disappeared."""

    async def test_retain_keeps_stale_cards(self, store, source):
        source.documents["bio.md"] = DOC
        await sync_document(store, source, "bio.md")
        source.documents["bio.md"] = DOC.replace("## What is a ribosome?", "## Renamed")

        result = await sync_document(store, source, "bio.md", StalePolicy.RETAIN)

        stale_id = generate_card_id("bio.md", "What is a ribosome?")
        assert result.stale_ids == [stale_id]
        assert result.deleted == 0
        assert await store.get(stale_id) is not None
        assert len(await store.list_for_document("bio.md")) == 4

    async def test_delete_removes_stale_cards(self, store, source):
        source.documents["bio.md"] = DOC
        await sync_document(store, source, "bio.md")
        source.documents["bio.md"] = "# Cells\n"

        result = await sync_document(store, source, "bio.md", StalePolicy.DELETE)

        assert len(result.stale_ids) == 2
        assert result.deleted == 2
        cards = await store.list_for_document("bio.md")
        assert [c.question for c in cards] == ["Cells"]


class TestSyncTrackedDocuments:
    """Tests for sync_tracked_documents."""

    async def test_counts(self, store, source):
        source.documents["a.md"] = "# One\n# Two\n"
        source.documents["b.md"] = "# Three\n"
        tracking = TrackingConfig(tracked_files=["a.md", "b.md", "missing.md"])

        stats = await sync_tracked_documents(store, source, tracking)

        assert stats == {
            "documents": 3,
            "synced": 2,
            "skipped": 1,
            "errors": 0,
            "cards": 3,
            "stale": 0,
        }
        assert await store.list_tracked_documents() == ["a.md", "b.md"]

    async def test_concurrent_indexing_gives_same_result(self, store, source):
        tracked = []
        for i in range(8):
            path = f"doc{i}.md"
            source.documents[path] = f"# Heading {i}\n## Sub {i}\n"
            tracked.append(path)

        stats = await sync_tracked_documents(
            store, source, TrackingConfig(tracked_files=tracked), concurrency=4
        )

        assert stats["synced"] == 8
        assert stats["cards"] == 16
        assert await store.count() == 16

    async def test_empty_tracking_list(self, store, source):
        stats = await sync_tracked_documents(store, source, TrackingConfig())

        assert stats["documents"] == 0
        assert await store.list_all() == []
