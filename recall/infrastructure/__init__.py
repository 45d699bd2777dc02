"""Adapters for the storage and document ports."""

from .file_storage import LocalFileStorage
from .vault_document_source import VaultDocumentSource, extract_headings

__all__ = ["LocalFileStorage", "VaultDocumentSource", "extract_headings"]
