from pathlib import PurePath
from textwrap import dedent
from typing import NoReturn, Optional

from ..types import HeaderSyntaxError


def raise_err(
    path: Optional[PurePath], lineno: int, line: str, reason: str
) -> NoReturn:
    msg = f"""\
    Cannot compile:
    path:   {path or "<string>"}
    lineno: {lineno}
    line:   {line}
    reason: |-
    {reason}
    """
    raise HeaderSyntaxError(dedent(msg))
