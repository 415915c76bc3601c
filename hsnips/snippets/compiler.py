from dataclasses import replace
from enum import Enum, auto
from pathlib import PurePath
from re import compile
from textwrap import dedent
from typing import Iterator, MutableSequence, Optional, Sequence, Tuple

from std2.string import removeprefix

from .executor import SNIPPETS, execute
from .parsers.body import compile_body
from .parsers.header import is_header, parse_header
from .parsers.types import line_stream
from .types import CompilationUnit, Snippet, SnippetDefinitionSource

_LINE_SEP = compile(r"\r?\n")

_COMMENT_START = "#"
_GLOBAL_START = "global"
_GLOBAL_END = "endglobal"
_PRIORITY_START = "priority "
_CONTEXT_START = "context "

_INDENT = " " * 4

# Unit source line, paired with the snippet file line it originates from
_Origin = Tuple[str, int]


class _State(Enum):
    normal = auto()
    pglobal = auto()


def _name(idx: int) -> str:
    return f"_snippet_{idx}"


def _priority(value: str) -> int:
    try:
        return int(float(value.strip()))
    except (ValueError, OverflowError):
        return 0


def _preamble(fragment: Sequence[Tuple[int, str]]) -> Iterator[_Origin]:
    pairs = [(lineno, part) for lineno, line in fragment for part in line.split("\r")]
    linenos = (lineno for lineno, _ in pairs)
    text = dedent("\n".join(line for _, line in pairs))
    yield from zip(text.split("\n"), linenos)


def _artifacts(
    definitions: Sequence[SnippetDefinitionSource],
) -> Iterator[_Origin]:
    yield f"{SNIPPETS} = [", 0
    for idx, definition in enumerate(definitions):
        lineno = definition.lineno
        yield f"{_INDENT}_Artifact(", lineno
        yield f"{_INDENT * 2}generator={_name(idx)},", lineno
        if definition.context_source is not None:
            yield f"{_INDENT * 2}context_filter=lambda context: (", lineno
            yield f"{_INDENT * 3}{definition.context_source}", lineno
            yield f"{_INDENT * 2}),", lineno
        yield f"{_INDENT}),", lineno
    yield "]", 0


def compile_unit(text: str, path: Optional[PurePath] = None) -> CompilationUnit:
    """
    One module per snippet file:

    preamble lines from every `global` block, one generator `def` per snippet,
    then the artifact list bound to `__snippets__`, all in file order
    """

    lines = line_stream(_LINE_SEP.split(text))

    preamble: MutableSequence[_Origin] = []
    generators: MutableSequence[_Origin] = []
    definitions: MutableSequence[SnippetDefinitionSource] = []

    state = _State.normal
    fragment: MutableSequence[Tuple[int, str]] = []
    priority: int = 0
    context: Optional[str] = None

    for lineno, line in lines:
        if state is _State.pglobal:
            if line.startswith(_GLOBAL_END):
                state = _State.normal
                preamble.extend(_preamble(fragment))
                fragment.clear()
            else:
                fragment.append((lineno, line))

        elif line.startswith(_COMMENT_START):
            pass

        elif line.startswith(_GLOBAL_START):
            state = _State.pglobal

        elif line.startswith(_PRIORITY_START):
            priority = _priority(removeprefix(line, prefix=_PRIORITY_START))

        elif line.startswith(_CONTEXT_START):
            context = removeprefix(line, prefix=_CONTEXT_START).strip() or None

        elif is_header(line):
            header = parse_header(line, path=path, lineno=lineno)
            body = compile_body(_name(len(definitions)), lines=lines, lineno=lineno)
            definition = SnippetDefinitionSource(
                header=replace(header, priority=priority),
                body_source=body.source,
                context_source=context,
                lineno=lineno,
            )
            definitions.append(definition)
            generators.append(("", 0))
            generators.extend((src, lineno) for src in body.source.split("\n"))

            priority, context = 0, None

    if fragment:
        preamble.extend(_preamble(fragment))

    origins = (*preamble, *generators, ("", 0), *_artifacts(definitions))
    unit = CompilationUnit(
        path=path,
        preamble="\n".join(src for src, _ in preamble),
        source="\n".join(src for src, _ in origins),
        definitions=tuple(definitions),
        origins=tuple(lineno for _, lineno in origins),
    )
    return unit


def compile_snippets(text: str, path: Optional[PurePath] = None) -> Sequence[Snippet]:
    unit = compile_unit(text, path=path)
    artifacts = execute(unit)

    snippets = tuple(
        Snippet(
            header=definition.header,
            generator=artifact.generator,
            context_filter=artifact.context_filter,
        )
        for definition, artifact in zip(unit.definitions, artifacts)
    )
    return snippets
