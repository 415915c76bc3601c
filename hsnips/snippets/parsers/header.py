from pathlib import PurePath
from re import MULTILINE, VERBOSE, compile, error
from typing import AbstractSet, Optional

from ..types import Flag, SnippetHeader, Trigger
from .parse import raise_err

SNIPPET_START = "snippet"
SNIPPET_END = "endsnippet"

_ANCHOR = "$"

_CANDIDATE = compile(rf"^{SNIPPET_START}(?=[\s`]|$)")

_HEADER = compile(
    r"""
    ^snippet
    (?:
        \s*`(?P<pattern>[^`]+)`
        |
        \s+(?P<literal>[^\s`"]\S*)
    )?
    (?:\s+"(?P<description>[^"]*)")?
    (?:\s+(?P<flags>[AMiwb]+))?
    \s*$
    """,
    VERBOSE,
)


def is_header(line: str) -> bool:
    return bool(_CANDIDATE.match(line))


def _anchored(pattern: str) -> bool:
    if not pattern.endswith(_ANCHOR):
        return False
    else:
        stem = pattern[: -len(_ANCHOR)]
        escapes = len(stem) - len(stem.rstrip("\\"))
        return escapes % 2 == 0


def _flags(flags: str) -> AbstractSet[Flag]:
    return frozenset(Flag(f) for f in flags)


def parse_header(
    line: str, path: Optional[PurePath] = None, lineno: int = 0
) -> SnippetHeader:
    """
    `snippet [`<pattern>`|<literal>] ["<description>"] [<flags>]`
    """

    match = _HEADER.match(line)
    if not match:
        raise_err(path, lineno=lineno, line=line, reason="Malformed snippet header")

    pattern, literal = match.group("pattern"), match.group("literal")
    trigger: Trigger
    if pattern is not None:
        source = pattern if _anchored(pattern) else pattern + _ANCHOR
        try:
            trigger = compile(source, MULTILINE)
        except error as e:
            reason = f"Invalid trigger pattern :: {e}"
            raise_err(path, lineno=lineno, line=line, reason=reason)
    elif literal is not None:
        trigger = literal
    else:
        raise_err(path, lineno=lineno, line=line, reason="Missing snippet trigger")

    header = SnippetHeader(
        trigger=trigger,
        description=match.group("description") or "",
        flags=_flags(match.group("flags") or ""),
    )
    return header
