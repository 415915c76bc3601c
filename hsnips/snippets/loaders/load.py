from dataclasses import dataclass
from os.path import normcase
from pathlib import Path
from typing import (
    AbstractSet,
    Iterable,
    Iterator,
    Mapping,
    MutableMapping,
    MutableSequence,
    Sequence,
)

from pynvim_pp.logging import log
from std2.locale import si_prefixed_smol
from std2.pathlib import walk
from std2.timeit import timeit

from ...consts import UTF8
from ...shared.settings import Settings
from ..compiler import compile_snippets
from ..types import CompileError, Snippet


@dataclass(frozen=True)
class LoadedSnips:
    snippets: Mapping[str, Sequence[Snippet]]
    errors: Mapping[Path, Exception]


def load_paths(search: Iterable[Path], exts: AbstractSet[str]) -> Iterator[Path]:
    for search_path in search:
        if search_path.is_file():
            yield search_path
        else:
            for path in sorted(walk(search_path)):
                if path.suffix in exts:
                    yield Path(normcase(path))


def load_file(path: Path) -> Sequence[Snippet]:
    text = path.read_text(UTF8)
    with timeit() as t:
        snippets = compile_snippets(text, path=path)

    delta = si_prefixed_smol(t().total_seconds(), precision=0)
    log.debug("%s", f"Compiled {len(snippets)} snippets from {path} in {delta}s")
    return snippets


def _by_priority(snippets: Iterable[Snippet]) -> Sequence[Snippet]:
    return sorted(snippets, key=lambda s: -s.priority)


def load(search: Iterable[Path], settings: Settings) -> LoadedSnips:
    """
    Every file compiles on its own, a broken file never takes down the others
    """

    by_lang: MutableMapping[str, MutableSequence[Snippet]] = {}
    errors: MutableMapping[Path, Exception] = {}

    for path in load_paths(search, exts={*settings.extensions}):
        try:
            snippets = load_file(path)
        except (CompileError, OSError, UnicodeDecodeError) as e:
            log.warning("%s", f"Failed to load snippet file {path} :: {e}")
            errors[path] = e
        else:
            lang = path.stem.lower()
            by_lang.setdefault(lang, []).extend(snippets)

    shared = by_lang.get(settings.global_filetype, ())
    merged = {
        lang: _by_priority(
            (*snippets, *shared) if lang != settings.global_filetype else snippets
        )
        for lang, snippets in by_lang.items()
    }

    return LoadedSnips(snippets=merged, errors=errors)
