"""LocalFileStorage round trips on a temporary directory."""

import pytest

from intake_flow.errors import StorageError
from intake_flow.storage import LocalFileStorage


@pytest.mark.asyncio
class TestLocalFileStorage:

    async def test_save_creates_directory(self, tmp_path):
        storage = LocalFileStorage(tmp_path / "nested" / "resumes")
        path = await storage.save("a.pdf", b"12345")
        assert await storage.exists(path)
        assert await storage.stat(path) == 5

    async def test_delete(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        path = await storage.save("a.pdf", b"x")
        assert await storage.delete(path) is True
        assert await storage.delete(path) is False
        assert not await storage.exists(path)

    async def test_refuses_names_outside_root(self, tmp_path):
        storage = LocalFileStorage(tmp_path / "root")
        with pytest.raises(StorageError):
            await storage.save("../escape.pdf", b"x")
        with pytest.raises(StorageError):
            await storage.save("sub/dir.pdf", b"x")

    async def test_stat_missing(self, tmp_path):
        with pytest.raises(StorageError):
            await LocalFileStorage(tmp_path).stat(str(tmp_path / "missing.pdf"))
