"""CardRepository protocol: the card store contract."""

from typing import List, Optional, Protocol, runtime_checkable

from ...models.value_objects import CardPatch


@runtime_checkable
class CardRepository(Protocol):
    """Repository interface for Card access used by indexing and review."""

    @property
    def is_ready(self) -> bool:
        """False when the backing store failed to initialise."""
        ...

    async def upsert(self, card_id: str, document_path: str, question: str) -> None:
        """Create the card with default scheduling, or refresh its question.

        Args:
            card_id: Identity derived from the document path and heading.
            document_path: Owning document, used only when inserting.
            question: Heading text.
        """
        ...

    async def get(self, card_id: str) -> Optional[object]:
        """Look up a card by id.

        Returns:
            The Card object, or None if not found.
        """
        ...

    async def update(self, card_id: str, patch: CardPatch) -> bool:
        """Apply the present fields of *patch* to the card.

        Returns:
            True if a card was changed.
        """
        ...

    async def delete(self, card_id: str) -> bool: ...

    async def delete_all_for_document(self, document_path: str) -> int: ...

    async def rename_document(self, old_path: str, new_path: str) -> int: ...

    async def list_due(self, as_of: Optional[int] = None) -> List[object]:
        """Cards with ``due_date <= as_of`` ordered by due date."""
        ...

    async def list_for_document(self, document_path: str) -> List[object]:
        """Cards of one document ordered by id (may be empty)."""
        ...

    async def list_tracked_documents(self) -> List[str]: ...
