"""Tests for temp file download and delayed cleanup."""

import asyncio

import httpx
import pytest

from modrinthbot.errors import DownloadError
from modrinthbot.files.store import FileStore


def _store(tmp_path, handler) -> FileStore:
    return FileStore(tmp_path / "temp", user_agent="test-agent", transport=httpx.MockTransport(handler))


def _echo_path(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=request.url.path.encode())


class TestDownload:
    """Tests for download_to_temp."""

    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path):
        store = _store(tmp_path, lambda request: httpx.Response(200, content=b"PK\x03\x04jar"))
        path = await store.download_to_temp("https://cdn.modrinth.com/x.jar", "sodium.jar")
        assert path.name == "sodium.jar"
        assert path.parent.parent == tmp_path / "temp"
        assert path.read_bytes() == b"PK\x03\x04jar"

    @pytest.mark.asyncio
    async def test_unsafe_filename(self, tmp_path):
        store = _store(tmp_path, lambda request: httpx.Response(200, content=b"x"))
        path = await store.download_to_temp("https://cdn.modrinth.com/x.jar", "../evil:name.jar")
        assert path.parent.parent == tmp_path / "temp"
        assert path.name == ".._evil_name.jar"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["..", "  ", "", "."])
    async def test_degenerate_filename_falls_back(self, tmp_path, name):
        store = _store(tmp_path, lambda request: httpx.Response(200, content=b"x"))
        path = await store.download_to_temp("https://cdn.modrinth.com/x", name)
        assert path.name == "download.bin"
        assert path.is_file()

    @pytest.mark.asyncio
    async def test_same_name_downloads_do_not_share_a_file(self, tmp_path):
        store = _store(tmp_path, _echo_path)
        first = await store.download_to_temp("https://cdn.modrinth.com/a/sodium.jar", "sodium.jar")
        store.delete_after(first, 0.01)
        second = await store.download_to_temp("https://cdn.modrinth.com/b/sodium.jar", "sodium.jar")

        await asyncio.sleep(0.05)
        assert first != second
        assert not first.exists()
        assert second.read_bytes() == b"/b/sodium.jar"

    @pytest.mark.asyncio
    async def test_bad_status_leaves_nothing(self, tmp_path):
        store = _store(tmp_path, lambda request: httpx.Response(404))
        with pytest.raises(DownloadError, match="404"):
            await store.download_to_temp("https://cdn.modrinth.com/x.jar", "x.jar")
        assert list((tmp_path / "temp").iterdir()) == []

    @pytest.mark.asyncio
    async def test_network_error(self, tmp_path):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        store = _store(tmp_path, handler)
        with pytest.raises(DownloadError):
            await store.download_to_temp("https://cdn.modrinth.com/x.jar", "x.jar")


class TestCleanup:
    """Tests for delete_after and close."""

    @pytest.mark.asyncio
    async def test_deletes_after_delay(self, tmp_path):
        store = FileStore(tmp_path)
        target = tmp_path / "a.jar"
        target.write_bytes(b"x")

        task = store.delete_after(target, 0)
        assert store.pending_cleanups == 1
        await task
        await asyncio.sleep(0)
        assert not target.exists()
        assert store.pending_cleanups == 0

    @pytest.mark.asyncio
    async def test_removes_download_dir(self, tmp_path):
        store = _store(tmp_path, lambda request: httpx.Response(200, content=b"x"))
        path = await store.download_to_temp("https://cdn.modrinth.com/x.jar", "x.jar")
        await store.delete_after(path, 0)
        assert not path.parent.exists()
        assert (tmp_path / "temp").exists()

    @pytest.mark.asyncio
    async def test_missing_file_is_not_an_error(self, tmp_path):
        store = FileStore(tmp_path)
        await store.delete_after(tmp_path / "gone.jar", 0)

    @pytest.mark.asyncio
    async def test_close_flushes_pending(self, tmp_path):
        store = _store(tmp_path, lambda request: httpx.Response(200, content=b"x"))
        path = await store.download_to_temp("https://cdn.modrinth.com/x.jar", "x.jar")
        store.delete_after(path, 60)

        await store.close()
        await asyncio.sleep(0)
        assert not path.exists()
        assert store.pending_cleanups == 0
