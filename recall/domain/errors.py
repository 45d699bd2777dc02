"""
Typed domain errors for Contextual Recall.

These let adapters report specific failure modes (storage I/O, corrupt
snapshot, bad document path) so the store and the reconciler can turn
each one into the right degraded behaviour at their boundary.
"""


class RecallError(Exception):
    """Base class for all domain-specific errors."""


# ---------------------------------------------------------------------------
# Durable storage
# ---------------------------------------------------------------------------


class StorageError(RecallError):
    """Reading or writing a blob in durable storage failed."""

    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        self.reason = reason
        message = f"Storage operation failed for {name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SnapshotCorrupted(RecallError):
    """The persisted snapshot could not be decoded."""


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class InvalidDocumentPath(RecallError):
    """A document path resolves outside the vault."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document path escapes the vault: {path}")
