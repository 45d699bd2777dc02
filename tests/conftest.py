import asyncio
import logging
import os
from typing import Dict, List, Optional, Tuple

import pytest

from recall.domain.errors import StorageError
from recall.domain.ports.document_source import Heading
from recall.infrastructure.vault_document_source import extract_headings, extract_section
from recall.services.srs.card_store import CardStore

# Set test environment variables
os.environ["RECALL_ENVIRONMENT"] = "test"
os.environ["RECALL_LOG_LEVEL"] = "WARNING"


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


# =============================================================================
# Fakes for the storage and document ports
# =============================================================================


class FakeStorage:
    """In-memory ByteStorage that records writes and can inject failures."""

    def __init__(self, blobs: Optional[Dict[str, bytes]] = None):
        self.blobs: Dict[str, bytes] = dict(blobs or {})
        self.writes: List[Tuple[str, bytes]] = []
        self.fail_writes = 0  # Number of upcoming writes that raise
        self.write_error: Optional[BaseException] = None  # Raised on every write
        self.write_attempts = 0
        self.fail_reads = False
        self.write_delay = 0.0

    async def read(self, name: str) -> Optional[bytes]:
        if self.fail_reads:
            raise StorageError(name, "read failed")
        return self.blobs.get(name)

    async def write(self, name: str, data: bytes) -> None:
        self.write_attempts += 1
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.write_error is not None:
            raise self.write_error
        if self.fail_writes:
            self.fail_writes -= 1
            raise StorageError(name, "disk full")
        self.writes.append((name, data))
        self.blobs[name] = data


class FakeDocumentSource:
    """DocumentSource over a dict of path -> Markdown content."""

    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents: Dict[str, str] = dict(documents or {})

    async def read_content(self, path: str) -> Optional[str]:
        return self.documents.get(path)

    async def get_headings(self, path: str) -> Optional[List[Heading]]:
        content = self.documents.get(path)
        if content is None:
            return None
        return extract_headings(content)

    async def get_section(self, path: str, heading: str) -> Optional[str]:
        content = self.documents.get(path)
        if content is None:
            return None
        return extract_section(content, heading)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def source():
    return FakeDocumentSource()


def _make_store(storage, **overrides) -> CardStore:
    options = dict(
        flush_delay=0.05,
        flush_max_wait=1.0,
        flush_retry_attempts=1,
        flush_retry_delay=0.0,
    )
    options.update(overrides)
    return CardStore(storage, **options)


@pytest.fixture
def make_store():
    """Factory for CardStores with short timings for fast tests."""
    return _make_store


@pytest.fixture
async def store(storage):
    """A ready CardStore on FakeStorage, closed after the test."""
    card_store = _make_store(storage)
    assert await card_store.init() is True
    yield card_store
    await card_store.close()
