# tiercache/key_builder.py

from __future__ import annotations

import os
import re
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol, Union

PathLike = Union[str, "os.PathLike[str]"]

_SEPARATORS = re.compile(r"[\\/]")
_PATH_SEPARATORS = ("/", "\\")
_DOT_RUNS = re.compile(r"\.{2,}")
_EDGE_DOTS = re.compile(r"^\.+|\.+$")
_EDGE_COLONS = re.compile(r"^:+|:+$")


class KeyBuilder(Protocol):
    """
    Interface for cache key builders.
    """

    def build(self, raw_key: str, namespace: str) -> str:
        """
        Build a backend key for an application key.

        :param raw_key: The application key (a name or a path).
        :param namespace: The namespace the key belongs to.
        :return: A string representing the backend key.
        """
        ...

    def relative_path(self, file_path: PathLike) -> str:
        """
        Reduce a file path to the application key it is cached under.

        :param file_path: Path of the file being cached.
        :return: The application key for the file.
        """
        ...


def normalize_key(raw_key: str, namespace: str) -> str:
    """
    Turn an application key into a ``<namespace>:<key>`` backend key.

    Path separators become colons, runs of dots collapse to one dot, and
    leading/trailing dots and colons are stripped, in that order.

    :param raw_key: The application key.
    :param namespace: The namespace prefix.
    :return: The namespace-qualified backend key.
    """
    key = _SEPARATORS.sub(":", raw_key)
    key = _DOT_RUNS.sub(".", key)
    key = _EDGE_DOTS.sub("", key)
    key = _EDGE_COLONS.sub("", key)
    return f"{namespace}:{key}"


@lru_cache(maxsize=1)
def get_root() -> str:
    """
    Root directory stripped from file paths before they become keys.

    This is the parent of the directory holding the entry-point script,
    falling back to the parent of the working directory for interactive
    sessions.
    """
    main = sys.modules.get("__main__")
    entry = getattr(main, "__file__", None) or (sys.argv[0] if sys.argv else "")
    if entry:
        main_dir = Path(entry).resolve().parent
    else:
        main_dir = Path.cwd()
    return str(main_dir.parent)


def strip_root(file_path: PathLike, root: Optional[str] = None) -> str:
    """
    Remove ``root`` from the start of ``file_path``.

    The root is removed once, and only when the path starts with it as a
    whole directory; files outside the root keep their full path.
    """
    path = os.fspath(file_path)
    if root is None:
        root = get_root()
    if not root or not path.startswith(root):
        return path
    rest = path[len(root):]
    # "/srv/app" is not a prefix of "/srv/application"
    if rest and not root.endswith(_PATH_SEPARATORS) and not rest.startswith(_PATH_SEPARATORS):
        return path
    return rest


def derive_file_key(
    file_path: PathLike,
    namespace: str,
    root: Optional[str] = None,
) -> str:
    """Build the backend key a file is cached under."""
    return normalize_key(strip_root(file_path, root), namespace)


class DefaultKeyBuilder:
    """
    Default implementation of KeyBuilder.
    Applies :func:`normalize_key`, and strips a root directory from file
    paths.
    """

    def __init__(self, root: Optional[str] = None) -> None:
        self._root = root

    @property
    def root(self) -> str:
        if self._root is None:
            self._root = get_root()
        return self._root

    def build(self, raw_key: str, namespace: str) -> str:
        return normalize_key(raw_key, namespace)

    def relative_path(self, file_path: PathLike) -> str:
        return strip_root(file_path, self.root)


__all__ = [
    "KeyBuilder",
    "DefaultKeyBuilder",
    "normalize_key",
    "derive_file_key",
    "strip_root",
    "get_root",
]
