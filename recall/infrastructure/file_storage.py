"""Local filesystem implementation of the ByteStorage port."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..domain.errors import StorageError

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Stores named blobs as files in one directory.

    Writes go to a temporary file in the same directory which then replaces
    the target, so readers never observe a partially written blob.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()

    def path_for(self, name: str) -> Path:
        return self.root / name

    async def read(self, name: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read_sync, name)

    async def write(self, name: str, data: bytes) -> None:
        await asyncio.to_thread(self._write_sync, name, data)

    def _read_sync(self, name: str) -> Optional[bytes]:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(name, str(e)) from e

    def _write_sync(self, name: str, data: bytes) -> None:
        path = self.path_for(name)
        tmp_path: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise StorageError(name, str(e)) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.debug(f"Wrote {len(data)} bytes to {path}")
