from logging import WARNING
from pathlib import Path
from tempfile import TemporaryDirectory
from textwrap import dedent
from unittest import TestCase

from pynvim_pp.logging import log

from hsnips.shared.settings import Settings
from hsnips.snippets.loaders.load import load
from hsnips.snippets.types import HeaderSyntaxError

_SETTINGS = Settings(extensions=(".hsnips",), global_filetype="all")

_ALL = """
snippet date
today
endsnippet

priority 1
snippet sig
-- me
endsnippet
"""

_TEX = """
snippet frac
\\frac{}{}
endsnippet

priority 10
snippet mk
$$
endsnippet
"""

_BROKEN = """
snippet "no trigger"
oops
endsnippet
"""


class Load(TestCase):
    def test_1(self) -> None:
        with TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "all.hsnips").write_text(dedent(_ALL))
            (root / "TeX.hsnips").write_text(dedent(_TEX))
            (root / "notes.txt").write_text("snippet ignored")

            loaded = load((root,), settings=_SETTINGS)

        self.assertEqual(loaded.errors, {})
        self.assertEqual(set(loaded.snippets), {"all", "tex"})

        tex = [s.header.trigger for s in loaded.snippets["tex"]]
        self.assertEqual(tex, ["mk", "sig", "frac", "date"])

        everywhere = [s.header.trigger for s in loaded.snippets["all"]]
        self.assertEqual(everywhere, ["sig", "date"])

    def test_2(self) -> None:
        with TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "tex.hsnips").write_text(dedent(_TEX))
            broken = root / "python.hsnips"
            broken.write_text(dedent(_BROKEN))

            with self.assertLogs(log, level=WARNING):
                loaded = load((root,), settings=_SETTINGS)

            self.assertEqual(set(loaded.snippets), {"tex"})
            (err,) = loaded.errors.values()
            self.assertIsInstance(err, HeaderSyntaxError)

    def test_3(self) -> None:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tex.hsnips"
            path.write_text(dedent(_TEX))
            loaded = load((path,), settings=_SETTINGS)

        self.assertEqual(len(loaded.snippets["tex"]), 2)
