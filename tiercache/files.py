# tiercache/files.py

"""
File helpers that cache file contents through a facade.

A file is cached under its path relative to the key builder's root, so
callers never handle cache keys themselves::

    text = await read_file(cache, ROOT / "templates" / "tool.html")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from tiercache.facade import CacheFacade
from tiercache.key_builder import PathLike

logger = logging.getLogger(__name__)


async def read_file(
    cache: CacheFacade,
    file_path: PathLike,
    encoding: str = "utf-8",
    *,
    namespace: Optional[str] = None,
) -> str:
    """
    Return the text of ``file_path``, from the cache when it is there.

    Disk errors (missing file, permissions) propagate as ``OSError``.
    """
    key = cache.key_builder.relative_path(file_path)

    async def load() -> str:
        logger.debug("reading %s from disk", file_path)
        return await asyncio.to_thread(Path(file_path).read_text, encoding=encoding)

    return await cache.get_or_compute(key, load, namespace=namespace)


async def write_file(
    cache: CacheFacade,
    file_path: PathLike,
    data: str,
    encoding: str = "utf-8",
    *,
    namespace: Optional[str] = None,
) -> None:
    """
    Write ``data`` to ``file_path`` and cache it as the file's new content.

    The cached entry is replaced only after the write succeeds.
    """
    key = cache.key_builder.relative_path(file_path)
    await asyncio.to_thread(Path(file_path).write_text, data, encoding=encoding)
    await cache.invalidate(key, namespace=namespace)
    await cache.put(key, data, namespace=namespace)


async def drop_file(
    cache: CacheFacade,
    file_path: PathLike,
    *,
    namespace: Optional[str] = None,
) -> int:
    """Forget the cached content of ``file_path``."""
    key = cache.key_builder.relative_path(file_path)
    return await cache.invalidate(key, namespace=namespace)


__all__ = ["read_file", "write_file", "drop_file"]
