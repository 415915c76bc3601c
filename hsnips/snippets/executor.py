from ast import (
    AnnAssign,
    Assign,
    AsyncFunctionDef,
    ClassDef,
    FunctionDef,
    Import,
    ImportFrom,
    List,
    Name,
    Starred,
    Tuple,
    expr,
    parse,
    stmt,
)
from importlib import import_module
from string import Template
from textwrap import dedent
from traceback import extract_tb
from types import ModuleType
from typing import Any, Dict, Iterator, MutableSet, Optional, Sequence

from pynvim_pp.logging import log

from .types import (
    Artifact,
    Block,
    CompilationUnit,
    CompileExecutionError,
    Diagnostic,
    Failure,
)

SNIPPETS = "__snippets__"

_EXPLANATIONS = {
    Failure.duplicate: """
    Binding redeclaration detected in global block.
    `${name}` is bound more than once,
    check for duplicate assignments, `def`, `class` or `import` statements.
    """,
    Failure.undefined: """
    Undefined name `${name}` detected.
    Make sure every name used in your snippets is defined in a global block,
    or resolved with `require(...)`.
    """,
    Failure.null_access: """
    Accessing attribute `${name}` of None.
    This often happens when a value is not initialized,
    or when `require(...)` could not resolve a module.
    """,
    Failure.syntax: """
    Invalid Python syntax in snippet code.
    """,
    Failure.other: """
    Error while executing snippet code.
    """,
}


class _Redeclared(Exception):
    def __init__(self, name: str, lineno: int) -> None:
        super().__init__(f"'{name}' has already been declared")
        self.name, self.lineno = name, lineno


def require(name: str) -> Optional[ModuleType]:
    """
    Resolve a module for snippet code, `None` if it cannot be imported
    """

    if name.startswith("."):
        log.warning("%s", f"Cannot require relative module '{name}'")
        return None

    try:
        return import_module(name)
    except ImportError as e:
        log.warning("%s", f"Could not require module '{name}' :: {e}")
        return None


def _targets(node: expr) -> Iterator[str]:
    if isinstance(node, Name):
        yield node.id
    elif isinstance(node, (Tuple, List)):
        for elt in node.elts:
            yield from _targets(elt)
    elif isinstance(node, Starred):
        yield from _targets(node.value)


def _bindings(node: stmt) -> Iterator[str]:
    if isinstance(node, Assign):
        for target in node.targets:
            yield from _targets(target)
    elif isinstance(node, AnnAssign):
        yield from _targets(node.target)
    elif isinstance(node, (FunctionDef, AsyncFunctionDef, ClassDef)):
        yield node.name
    elif isinstance(node, (Import, ImportFrom)):
        for alias in node.names:
            if alias.name != "*":
                name, _, _ = alias.name.partition(".")
                yield alias.asname or name


def _check_bindings(preamble: str) -> None:
    seen: MutableSet[str] = set()
    for node in parse(preamble).body:
        for name in _bindings(node):
            if name in seen:
                raise _Redeclared(name, lineno=node.lineno)
            else:
                seen.add(name)


def _origin(unit: CompilationUnit, lineno: Optional[int]) -> Optional[int]:
    if lineno is not None and 0 < lineno <= len(unit.origins):
        return unit.origins[lineno - 1] or None
    else:
        return None


def _tb_lineno(filename: str, e: BaseException) -> Optional[int]:
    frames = [
        frame for frame in extract_tb(e.__traceback__) if frame.filename == filename
    ]
    return frames[-1].lineno if frames else None


def _diagnose(unit: CompilationUnit, filename: str, e: Exception) -> Diagnostic:
    if isinstance(e, _Redeclared):
        return Diagnostic(
            kind=Failure.duplicate,
            message=str(e),
            name=e.name,
            lineno=_origin(unit, lineno=e.lineno),
        )
    elif isinstance(e, SyntaxError):
        return Diagnostic(
            kind=Failure.syntax,
            message=str(e),
            lineno=_origin(unit, lineno=e.lineno),
        )
    elif isinstance(e, NameError):
        return Diagnostic(
            kind=Failure.undefined,
            message=str(e),
            name=e.name,
            lineno=_origin(unit, lineno=_tb_lineno(filename, e=e)),
        )
    elif isinstance(e, AttributeError) and e.name is not None and e.obj is None:
        return Diagnostic(
            kind=Failure.null_access,
            message=str(e),
            name=e.name,
            lineno=_origin(unit, lineno=_tb_lineno(filename, e=e)),
        )
    else:
        return Diagnostic(
            kind=Failure.other,
            message=f"{type(e).__name__}: {e}",
            lineno=_origin(unit, lineno=_tb_lineno(filename, e=e)),
        )


def _fmt(unit: CompilationUnit, diagnostic: Diagnostic) -> str:
    explanation = Template(dedent(_EXPLANATIONS[diagnostic.kind])).substitute(
        name=diagnostic.name
    )
    tpl = """
    Failed to compile snippet code:
    path:   ${path}
    lineno: ${lineno}
    reason: |-
    ${explanation}
    Original error: ${message}
    """
    msg = Template(dedent(tpl)).substitute(
        path=unit.path or "<string>",
        lineno=diagnostic.lineno or "?",
        explanation=explanation.strip(),
        message=diagnostic.message,
    )
    return msg


def execute(unit: CompilationUnit) -> Sequence[Artifact]:
    """
    Runs the whole unit exactly once

    Every generator and context filter closes over the same namespace,
    the preamble is shared state for the lifetime of the returned artifacts
    """

    filename = f"<hsnips:{unit.path or ''}>"
    namespace: Dict[str, Any] = {
        "__name__": "__hsnips__",
        "require": require,
        "_Artifact": Artifact,
        "_Block": Block,
    }

    try:
        _check_bindings(unit.preamble)
        code = compile(unit.source, filename, "exec")
        exec(code, namespace)
    except Exception as e:
        diagnostic = _diagnose(unit, filename=filename, e=e)
        msg = _fmt(unit, diagnostic=diagnostic)
        raise CompileExecutionError(msg, diagnostic=diagnostic) from e
    else:
        artifacts: Sequence[Artifact] = namespace[SNIPPETS]
        return tuple(artifacts)
