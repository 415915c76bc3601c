from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import PurePath
from typing import (
    AbstractSet,
    Any,
    Callable,
    Optional,
    Pattern,
    Sequence,
    Tuple,
    Union,
)


class CompileError(Exception):
    ...


class HeaderSyntaxError(CompileError):
    ...


class Failure(Enum):
    duplicate = auto()
    undefined = auto()
    null_access = auto()
    syntax = auto()
    other = auto()


@dataclass(frozen=True)
class Diagnostic:
    kind: Failure
    message: str
    name: Optional[str] = None
    lineno: Optional[int] = None


class CompileExecutionError(CompileError):
    def __init__(self, msg: str, diagnostic: Diagnostic) -> None:
        super().__init__(msg)
        self.diagnostic = diagnostic


class Flag(Enum):
    A = "A"
    M = "M"
    i = "i"
    w = "w"
    b = "b"


Trigger = Union[str, Pattern[str]]


@dataclass(frozen=True)
class SnippetHeader:
    trigger: Trigger
    description: str = ""
    flags: AbstractSet[Flag] = frozenset()
    priority: int = 0


@dataclass(frozen=True)
class Block:
    idx: int


Segment = Union[str, Block]
Rendered = Tuple[Sequence[Segment], Sequence[str]]
GeneratorFunction = Callable[[Sequence[str], str, Any, str, Any], Rendered]
ContextFilter = Callable[[Any], bool]


@dataclass(frozen=True)
class Artifact:
    generator: GeneratorFunction
    context_filter: Optional[ContextFilter] = None


@dataclass(frozen=True)
class SnippetDefinitionSource:
    header: SnippetHeader
    body_source: str
    context_source: Optional[str] = None
    lineno: int = 0


@dataclass(frozen=True)
class CompilationUnit:
    path: Optional[PurePath]
    preamble: str
    source: str
    definitions: Sequence[SnippetDefinitionSource] = field(default_factory=tuple)
    origins: Sequence[int] = field(default_factory=tuple)


@dataclass(frozen=True)
class Snippet:
    header: SnippetHeader
    generator: GeneratorFunction
    context_filter: Optional[ContextFilter] = None

    @property
    def priority(self) -> int:
        return self.header.priority
