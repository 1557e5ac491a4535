"""Parsing for `git remote -v` listings."""

from __future__ import annotations

import dataclasses
import shlex
from typing import Iterable, Optional

_DIRECTIONS = {"(fetch)": "fetch", "(push)": "push"}


@dataclasses.dataclass(frozen=True)
class Remote:
    name: str
    url: str
    direction: Optional[str] = None


def _split_line(line: str) -> list[str]:
    lexer = shlex.shlex(line, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    # Backslashes are path separators on Windows, not escapes.
    lexer.escape = ""
    try:
        return list(lexer)
    except ValueError:
        return line.split()


def parse_remote_listing(text: str) -> list[Remote]:
    """Parse `<name> <url> [(fetch)|(push)]` lines into remotes.

    Fetch and push entries for the same name/url pair collapse into the first
    one seen. Lines with fewer than two tokens are ignored.
    """
    remotes: list[Remote] = []
    seen: set[tuple[str, str]] = set()
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        tokens = _split_line(line)
        if len(tokens) < 2:
            continue
        name, url = tokens[0], tokens[1]
        direction = _DIRECTIONS.get(tokens[2]) if len(tokens) > 2 else None
        key = (name, url)
        if key in seen:
            continue
        seen.add(key)
        remotes.append(Remote(name=name, url=url, direction=direction))
    return remotes


def find_remote(remotes: Iterable[Remote], name: str) -> Optional[Remote]:
    for remote in remotes:
        if remote.name == name:
            return remote
    return None


def has_remote(remotes: Iterable[Remote], name: str, url: str) -> bool:
    expected = url.strip()
    return any(remote.name == name and remote.url == expected for remote in remotes)
