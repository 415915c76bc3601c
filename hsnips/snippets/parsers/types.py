from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple, Union

from std2.itertools import deiter

NumberedLine = Tuple[int, str]


def line_stream(lines: Iterable[str], start: int = 1) -> deiter[NumberedLine]:
    return deiter(enumerate(lines, start=start))


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class LineBreak:
    ...


@dataclass(frozen=True)
class Script:
    code: Sequence[str]


Instruction = Union[Literal, LineBreak, Script]


@dataclass(frozen=True)
class Body:
    lineno: int
    instructions: Sequence[Instruction]
    source: str
