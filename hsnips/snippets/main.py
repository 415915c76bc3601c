from argparse import ArgumentParser, Namespace
from contextlib import nullcontext
from logging import DEBUG as DEBUG_LV
from logging import INFO
from pathlib import Path
from sys import stderr
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Sequence

from pynvim_pp.logging import log
from yaml import SafeDumper, add_representer, safe_dump_all
from yaml.nodes import ScalarNode, SequenceNode

from ..consts import DEBUG, UTF8
from ..shared.settings import load_settings
from .compiler import compile_unit
from .executor import execute
from .loaders.load import load, load_paths
from .materialize import materialize
from .types import Artifact, CompileError, SnippetDefinitionSource, Trigger

_WIDTH = 80
_TAB = 2


def _repr_str(dumper: SafeDumper, data: str) -> ScalarNode:
    style = "|" if len(data.splitlines()) > 1 else ""
    node = dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)
    return node


def _repr_seq(dumper: SafeDumper, data: Sequence[Any]) -> SequenceNode:
    node = dumper.represent_sequence("tag:yaml.org,2002:seq", data, flow_style=True)
    return node


add_representer(str, _repr_str, Dumper=SafeDumper)
add_representer(list, _repr_seq, Dumper=SafeDumper)


def _fmt_yaml(data: Sequence[Any]) -> str:
    yaml = safe_dump_all(
        data,
        allow_unicode=True,
        explicit_start=True,
        sort_keys=False,
        width=_WIDTH,
        indent=_TAB,
    )
    return str(yaml)


def _trigger(trigger: Trigger) -> Mapping[str, str]:
    if isinstance(trigger, str):
        return {"literal": trigger}
    else:
        return {"pattern": trigger.pattern}


def _pprn(
    path: Path,
    definitions: Sequence[SnippetDefinitionSource],
    artifacts: Sequence[Artifact],
    evaluate: bool,
) -> Iterator[Mapping[str, Any]]:
    for definition, artifact in zip(definitions, artifacts):
        header = definition.header
        mapping: MutableMapping[str, Any] = {"trigger": _trigger(header.trigger)}
        if header.description:
            mapping.update(description=header.description)
        if header.flags:
            mapping.update(flags=sorted(flag.value for flag in header.flags))
        if header.priority:
            mapping.update(priority=header.priority)
        if definition.context_source is not None:
            mapping.update(context=definition.context_source)

        if evaluate:
            try:
                rendered = artifact.generator((), "", "", str(path), None)
            except Exception as e:
                mapping.update(error=f"{type(e).__name__}: {e}")
            else:
                _, results = rendered
                mapping.update(expanded=materialize(rendered), blocks=[*results])

        yield mapping


def _parse_args(args: Optional[Sequence[str]]) -> Namespace:
    parser = ArgumentParser(prog="hsnips")
    parser.add_argument("--config", type=Path)
    sub_parsers = parser.add_subparsers(dest="action", required=True)

    with nullcontext(sub_parsers.add_parser("compile")) as p:
        p.add_argument("paths", nargs="+", type=Path)
        p.add_argument("--eval", action="store_true", default=False)

    with nullcontext(sub_parsers.add_parser("unit")) as p:
        p.add_argument("path", type=Path)

    with nullcontext(sub_parsers.add_parser("ls")) as p:
        p.add_argument("paths", nargs="+", type=Path)

    return parser.parse_args(args)


def main(args: Optional[Sequence[str]] = None) -> int:
    log.setLevel(DEBUG_LV if DEBUG else INFO)
    ns = _parse_args(args)
    settings = load_settings(ns.config)

    if ns.action == "unit":
        try:
            unit = compile_unit(ns.path.read_text(UTF8), path=ns.path)
        except CompileError as e:
            print(e, file=stderr)
            return 1
        else:
            print(unit.source)
            return 0

    elif ns.action == "compile":
        code = 0
        for path in load_paths(ns.paths, exts={*settings.extensions}):
            try:
                unit = compile_unit(path.read_text(UTF8), path=path)
                artifacts = execute(unit)
            except CompileError as e:
                print(e, file=stderr)
                code = 1
            else:
                docs = tuple(
                    _pprn(
                        path,
                        definitions=unit.definitions,
                        artifacts=artifacts,
                        evaluate=ns.eval,
                    )
                )
                print(_fmt_yaml(docs), end="")
        return code

    elif ns.action == "ls":
        loaded = load(ns.paths, settings=settings)
        listing = {
            lang: len(snippets) for lang, snippets in sorted(loaded.snippets.items())
        }
        print(_fmt_yaml((listing,)), end="")
        return 1 if loaded.errors else 0

    else:
        assert False
