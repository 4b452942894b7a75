"""Local-disk implementation of :class:`FileStorage`."""

import asyncio
import logging
from pathlib import Path

from intake_flow.errors import StorageError
from intake_flow.interfaces import FileStorage

logger = logging.getLogger(__name__)


class LocalFileStorage(FileStorage):
    """Stores attachments as files under ``root``.

    File I/O runs in a worker thread so the event loop is never blocked.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    async def save(self, name: str, data: bytes) -> str:
        target = self._root / name
        # Storage names are generated, never taken from user input
        if target.parent != self._root:
            raise StorageError(f"Refusing to store outside {self._root}: {name!r}")
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise StorageError(f"Failed to write {target}: {exc}") from exc
        logger.info("Stored %d bytes at %s", len(data), target)
        return str(target)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).is_file)

    async def delete(self, path: str) -> bool:
        try:
            removed = await asyncio.to_thread(self._unlink, Path(path))
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc
        if removed:
            logger.info("Deleted stored file %s", path)
        return removed

    async def stat(self, path: str) -> int:
        try:
            result = await asyncio.to_thread(Path(path).stat)
        except OSError as exc:
            raise StorageError(f"Failed to stat {path}: {exc}") from exc
        return result.st_size

    # --- Internal helpers (run in a worker thread) ---

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    @staticmethod
    def _unlink(path: Path) -> bool:
        if not path.is_file():
            return False
        path.unlink()
        return True
