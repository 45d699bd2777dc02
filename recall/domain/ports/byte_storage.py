"""ByteStorage port -- abstracts durable read-all/write-all blob storage."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ByteStorage(Protocol):
    """Stores opaque byte blobs under a name.

    ``read`` returns None when nothing is stored yet. ``write`` replaces the
    whole blob and raises on failure.
    """

    async def read(self, name: str) -> Optional[bytes]: ...

    async def write(self, name: str, data: bytes) -> None: ...
