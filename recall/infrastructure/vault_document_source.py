"""
Vault Document Source

Reads Markdown documents from a vault directory. Paths are vault-relative
and ``/``-separated, the way Obsidian names notes.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..domain.errors import InvalidDocumentPath
from ..domain.ports.document_source import Heading

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n.*?\n---\s*\n", re.DOTALL)
HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


def strip_frontmatter(content: str) -> str:
    """Remove a leading YAML front matter block."""
    return FRONTMATTER_RE.sub("", content, count=1)


def _iter_headings(lines: List[str]) -> Iterator[Tuple[int, Heading]]:
    """Yield (line index, heading) pairs outside fenced code blocks."""
    fence: Optional[str] = None

    for index, line in enumerate(lines):
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            continue
        if fence is not None:
            continue

        match = HEADING_RE.match(line)
        if not match:
            continue
        text = (match.group(2) or "").strip()
        if text:
            yield index, Heading(text=text, level=len(match.group(1)))


def extract_headings(content: str) -> List[Heading]:
    """ATX headings of a Markdown document, in document order."""
    lines = strip_frontmatter(content).splitlines()
    return [heading for _, heading in _iter_headings(lines)]


def extract_section(content: str, heading: str) -> Optional[str]:
    """Text after *heading* up to the next heading of the same or higher level.

    Returns:
        The trimmed section body, or None if the heading is not present.
    """
    lines = strip_frontmatter(content).splitlines()
    headings = list(_iter_headings(lines))

    for position, (start, found) in enumerate(headings):
        if found.text != heading:
            continue
        end = len(lines)
        for index, following in headings[position + 1 :]:
            if following.level <= found.level:
                end = index
                break
        return "\n".join(lines[start + 1 : end]).strip()

    return None


class VaultDocumentSource:
    """DocumentSource backed by Markdown files under a vault root."""

    def __init__(self, vault_root: Union[str, Path]):
        self.vault_root = Path(vault_root).expanduser().resolve()

    def resolve(self, path: str) -> Path:
        """Absolute file path for a vault-relative document path.

        Raises:
            InvalidDocumentPath: if the path points outside the vault.
        """
        candidate = (self.vault_root / path).resolve()
        if not candidate.is_relative_to(self.vault_root):
            raise InvalidDocumentPath(path)
        return candidate

    async def read_content(self, path: str) -> Optional[str]:
        file_path = self.resolve(path)
        try:
            return await asyncio.to_thread(
                file_path.read_text, encoding="utf-8", errors="replace"
            )
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            logger.debug(f"Document not found: {path}")
            return None

    async def get_headings(self, path: str) -> Optional[List[Heading]]:
        content = await self.read_content(path)
        if content is None:
            return None
        return extract_headings(content)

    async def get_section(self, path: str, heading: str) -> Optional[str]:
        content = await self.read_content(path)
        if content is None:
            return None
        return extract_section(content, heading)
