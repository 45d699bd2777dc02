"""Domain port protocols for decoupling services from infrastructure."""

from .byte_storage import ByteStorage
from .document_source import DocumentSource, Heading

__all__ = ["ByteStorage", "DocumentSource", "Heading"]
