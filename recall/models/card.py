"""
Card model: one reviewable unit per heading of a tracked document.
"""

from typing import Optional

from sqlalchemy import BigInteger, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

DEFAULT_INTERVAL = 1.0
DEFAULT_EASE = 2.5


class Card(Base):
    """
    A heading-backed flashcard and its scheduling state.
    """

    __tablename__ = "cards"
    __table_args__ = (
        Index("ix_cards_document_path", "document_path"),
        Index("ix_cards_due_date", "due_date"),
    )

    # Derived from (document_path, heading text) at creation time
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    document_path: Mapped[str] = mapped_column(Text, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)

    # Scheduling
    due_date: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True
    )  # ms since epoch
    interval: Mapped[float] = mapped_column(
        Float, nullable=False, default=DEFAULT_INTERVAL
    )  # days
    ease: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE)

    def __repr__(self) -> str:
        return (
            f"<Card(id={self.id}, document_path={self.document_path}, "
            f"question={self.question!r}, due_date={self.due_date}, "
            f"interval={self.interval}, ease={self.ease})>"
        )
