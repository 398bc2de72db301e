"""Tests for the file helpers."""

import pytest

from tiercache import CacheFacade, DefaultKeyBuilder, drop_file, read_file, write_file


@pytest.fixture
def cache(tmp_path, settings) -> CacheFacade:
    return CacheFacade(settings, key_builder=DefaultKeyBuilder(root=str(tmp_path)))


@pytest.mark.asyncio
async def test_read_is_cached_until_dropped(cache: CacheFacade, tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("first", encoding="utf-8")

    assert await read_file(cache, path) == "first"
    path.write_text("second", encoding="utf-8")
    assert await read_file(cache, path) == "first"

    assert await drop_file(cache, path) == 1
    assert await read_file(cache, path) == "second"


@pytest.mark.asyncio
async def test_key_is_relative_to_root(cache: CacheFacade, tmp_path) -> None:
    sub = tmp_path / "templates"
    sub.mkdir()
    (sub / "tool.html").write_text("<p/>", encoding="utf-8")

    await read_file(cache, sub / "tool.html")

    assert await cache.list_all() == ["default:templates:tool.html"]


@pytest.mark.asyncio
async def test_write_updates_disk_and_cache(cache: CacheFacade, tmp_path) -> None:
    path = tmp_path / "out.txt"
    path.write_text("old", encoding="utf-8")
    await read_file(cache, path)

    await write_file(cache, path, "new")

    assert path.read_text(encoding="utf-8") == "new"
    path.write_text("changed behind the cache", encoding="utf-8")
    assert await read_file(cache, path) == "new"


@pytest.mark.asyncio
async def test_missing_file_raises(cache: CacheFacade, tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        await read_file(cache, tmp_path / "absent.txt")
    assert await cache.list_all() == []
