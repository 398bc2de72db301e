# tiercache/glob.py

"""
Glob matching for backends without native pattern queries.

Follows the Redis ``KEYS`` dialect: ``*`` matches any run of characters,
``?`` matches exactly one character, ``[...]`` is a character class
(``[^...]`` or ``[!...]`` negates it) and a backslash escapes the next
character. A pattern matches the whole key, never a substring.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable

_GLOB_SPECIAL = re.compile(r"[*?\[\]\\]")


def glob_to_regex(pattern: str) -> str:
    """
    Translate a glob pattern into an anchored regular expression.

    :param pattern: Glob pattern.
    :return: Regular expression source matching the whole string.
    """
    parts: list[str] = []
    i = 0
    n = len(pattern)

    while i < n:
        char = pattern[i]
        i += 1

        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "\\" and i < n:
            parts.append(re.escape(pattern[i]))
            i += 1
        elif char == "[":
            start = i
            if start < n and pattern[start] in "^!":
                start += 1
            # a leading "]" is a member of the class, not its end
            if start < n and pattern[start] == "]":
                start += 1
            end = pattern.find("]", start)
            if end == -1:
                # unterminated class is a literal bracket
                parts.append(re.escape(char))
                continue

            body = pattern[i:end]
            i = end + 1
            negate = body[:1] in ("^", "!")
            if negate:
                body = body[1:]
            body = (
                body.replace("\\", "\\\\")
                .replace("[", "\\[")
                .replace("]", "\\]")
            )
            if body.startswith("^"):
                body = "\\" + body
            parts.append(f"[{'^' if negate else ''}{body}]")
        else:
            parts.append(re.escape(char))

    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(glob_to_regex(pattern), re.DOTALL)


def compile_glob(pattern: str) -> Callable[[str], bool]:
    """
    Compile a glob pattern into a predicate over keys.

    >>> compile_glob("a*c")("abc")
    True
    >>> compile_glob("a?c")("ac")
    False
    """
    regex = _compiled(pattern)

    def matches(candidate: str) -> bool:
        return regex.match(candidate) is not None

    return matches


def escape_glob(text: str) -> str:
    """Backslash-escape the glob metacharacters in ``text`` so it matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\g<0>", text)


def filter_keys(keys, pattern: str) -> list[str]:
    """Return the keys matching ``pattern``, preserving their order."""
    matches = compile_glob(pattern)
    return [key for key in keys if matches(key)]


__all__ = ["compile_glob", "escape_glob", "glob_to_regex", "filter_keys"]
