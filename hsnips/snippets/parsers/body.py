from __future__ import annotations

from ast import Expr, parse
from enum import Enum, auto
from io import StringIO
from re import compile
from textwrap import dedent
from tokenize import TokenError, generate_tokens
from typing import (
    AbstractSet,
    Iterator,
    MutableSequence,
    MutableSet,
    Optional,
    Sequence,
    Tuple,
)

from std2.itertools import deiter
from std2.types import never

from ...consts import UTF8
from .header import SNIPPET_END
from .types import Body, Instruction, LineBreak, Literal, NumberedLine, Script

_DELIMITER = compile(r"``(?!`)")

PARAMS = ("t", "m", "w", "path", "snip")
_INDENT = " " * 4
_CAPTURE = "_expr = "


class _Mode(Enum):
    text = auto()
    script = auto()


def escape(text: str) -> str:
    """
    Backslashes first, otherwise the escaped quotes get doubled again
    """

    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\r", "\\r")


def _split(line: str) -> Optional[Tuple[str, str]]:
    if match := _DELIMITER.search(line):
        return line[: match.start()], line[match.end() :]
    else:
        return None


def _margin(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _normalize(fragments: Sequence[str], margin: str) -> Sequence[str]:
    """
    Code on the opening line sits at the margin of that line,
    the lines after it keep their indentation relative to that margin.
    A block opened at the end of its line is dedented as a group.

    A lone `\\r` is a line break to the Python tokenizer, so it is one here too
    """

    if not fragments:
        return ()
    else:
        first, *rest = (
            part for fragment in fragments for part in fragment.split("\r")
        )
        head = first.strip()
        if head:
            widths = (len(_margin(line)) for line in rest if line.strip())
            cut = min(len(margin), min(widths, default=0))
            tail = [line[cut:] for line in rest]
        else:
            tail = dedent("\n".join(rest)).split("\n")

        code = [line.rstrip() for line in (head, *tail)]
        while code and not code[0]:
            code.pop(0)
        while code and not code[-1]:
            code.pop()
        return tuple(code)


def scan(lines: deiter[NumberedLine]) -> Sequence[Instruction]:
    instructions: MutableSequence[Instruction] = []
    code: MutableSequence[str] = []
    mode = _Mode.text
    physical: Optional[int] = None
    margin = opening = ""

    for lineno, line in lines:
        if lineno != physical:
            physical, margin = lineno, _margin(line)
        split = _split(line)

        if mode is _Mode.text:
            if line.startswith(SNIPPET_END):
                break
            elif split is None:
                instructions.append(Literal(text=line))
                instructions.append(LineBreak())
            else:
                text, rest = split
                instructions.append(Literal(text=text))
                code.clear()
                opening = margin
                lines.push_back((lineno, rest))
                mode = _Mode.script

        elif mode is _Mode.script:
            if split is None:
                code.append(line)
            else:
                fragment, rest = split
                code.append(fragment)
                instructions.append(Script(code=_normalize(code, margin=opening)))
                code.clear()
                lines.push_back((lineno, rest))
                mode = _Mode.text

        else:
            never(mode)

    else:
        if mode is _Mode.script:
            instructions.append(Script(code=_normalize(code, margin=opening)))

    if instructions and isinstance(instructions[-1], LineBreak):
        instructions.pop()

    return instructions


def _capture(code: Sequence[str]) -> Tuple[Sequence[str], bool]:
    try:
        module = parse("\n".join(code))
    except SyntaxError:
        return code, False
    else:
        last = module.body[-1] if module.body else None
        if isinstance(last, Expr):
            lines = [*code]
            idx, col = last.lineno - 1, last.col_offset
            raw = lines[idx].encode(UTF8)
            lines[idx] = (raw[:col] + _CAPTURE.encode(UTF8) + raw[col:]).decode(UTF8)
            return lines, True
        else:
            return code, False


def _statements(instructions: Sequence[Instruction]) -> Iterator[str]:
    yield "_result = []"
    yield "_block_results = []"

    for instruction in instructions:
        if isinstance(instruction, Literal):
            if instruction.text:
                yield f'_result.append("{escape(instruction.text)}")'
        elif isinstance(instruction, LineBreak):
            yield '_result.append("\\n")'
        elif isinstance(instruction, Script):
            code, captured = _capture(instruction.code)
            yield 'rv = ""'
            yield from code
            if captured:
                yield "if _expr is not None:"
                yield _INDENT + "rv = _expr"
            yield "_result.append(_Block(len(_block_results)))"
            yield "_block_results.append(str(rv))"
        else:
            never(instruction)

    yield "return tuple(_result), tuple(_block_results)"


def _continuations(source: str) -> AbstractSet[int]:
    """
    Indices of lines that start inside a multi-line string literal
    """

    idx: MutableSet[int] = set()
    try:
        for token in generate_tokens(StringIO(source).readline):
            (start, _), (end, _) = token.start, token.end
            idx.update(range(start, end))
    except (TokenError, SyntaxError):
        return frozenset()
    else:
        return idx


def render(name: str, instructions: Sequence[Instruction]) -> str:
    head = f"def {name}({', '.join(PARAMS)}):"
    statements = "\n".join(_statements(instructions))
    verbatim = _continuations(statements)
    body = (
        line if not line or idx in verbatim else _INDENT + line
        for idx, line in enumerate(statements.split("\n"))
    )
    return "\n".join((head, *body))


def compile_body(name: str, lines: deiter[NumberedLine], lineno: int = 0) -> Body:
    instructions = tuple(scan(lines))
    source = render(name, instructions=instructions)
    return Body(lineno=lineno, instructions=instructions, source=source)
