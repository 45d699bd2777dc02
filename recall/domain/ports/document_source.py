"""DocumentSource port -- abstracts access to the headings of a document."""

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class Heading:
    """A heading as it appears in a document."""

    text: str
    level: int


@runtime_checkable
class DocumentSource(Protocol):
    """Provides headings and raw content for documents keyed by path."""

    async def get_headings(self, path: str) -> Optional[List[Heading]]:
        """Headings in document order, or None if the document is unavailable."""
        ...

    async def read_content(self, path: str) -> Optional[str]:
        """Raw document content, or None if the document is unavailable."""
        ...

    async def get_section(self, path: str, heading: str) -> Optional[str]:
        """Text under *heading* up to the next heading of the same or higher level."""
        ...
