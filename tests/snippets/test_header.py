from re import MULTILINE, Pattern
from unittest import TestCase

from hsnips.snippets.parsers.header import is_header, parse_header
from hsnips.snippets.types import Flag, HeaderSyntaxError


class IsHeader(TestCase):
    def test_1(self) -> None:
        self.assertTrue(is_header("snippet foo"))
        self.assertTrue(is_header("snippet"))
        self.assertTrue(is_header("snippet`x`"))

    def test_2(self) -> None:
        self.assertFalse(is_header("snippets foo"))
        self.assertFalse(is_header("endsnippet"))
        self.assertFalse(is_header(" snippet foo"))


class LiteralHeader(TestCase):
    def test_1(self) -> None:
        header = parse_header('snippet foo "Foo bar" Ab')
        self.assertEqual(header.trigger, "foo")
        self.assertEqual(header.description, "Foo bar")
        self.assertEqual(header.flags, {Flag.A, Flag.b})
        self.assertEqual(header.priority, 0)

    def test_2(self) -> None:
        header = parse_header("snippet foo")
        self.assertEqual(header.trigger, "foo")
        self.assertEqual(header.description, "")
        self.assertEqual(header.flags, frozenset())

    def test_3(self) -> None:
        header = parse_header("snippet fn iwM")
        self.assertEqual(header.trigger, "fn")
        self.assertEqual(header.description, "")
        self.assertEqual(header.flags, {Flag.i, Flag.w, Flag.M})

    def test_4(self) -> None:
        header = parse_header('snippet => "Arrow"  ')
        self.assertEqual(header.trigger, "=>")
        self.assertEqual(header.description, "Arrow")

    def test_5(self) -> None:
        header = parse_header('snippet foo ""')
        self.assertEqual(header.description, "")


class PatternHeader(TestCase):
    def test_1(self) -> None:
        header = parse_header(r'snippet `(\d+)/` "Fraction" A')
        assert isinstance(header.trigger, Pattern)
        self.assertEqual(header.trigger.pattern, r"(\d+)/$")
        self.assertTrue(header.trigger.flags & MULTILINE)
        self.assertEqual(header.description, "Fraction")
        self.assertEqual(header.flags, {Flag.A})

    def test_2(self) -> None:
        header = parse_header("snippet `abc$`")
        assert isinstance(header.trigger, Pattern)
        self.assertEqual(header.trigger.pattern, "abc$")

    def test_3(self) -> None:
        header = parse_header(r"snippet `cost\$`")
        assert isinstance(header.trigger, Pattern)
        self.assertEqual(header.trigger.pattern, r"cost\$$")

    def test_4(self) -> None:
        header = parse_header("snippet `^(\\w+)\\.`")
        assert isinstance(header.trigger, Pattern)
        match = header.trigger.search("first line\nsome.")
        assert match
        self.assertEqual(match.group(1), "some")


class BadHeader(TestCase):
    def test_1(self) -> None:
        with self.assertRaises(HeaderSyntaxError):
            parse_header('snippet "desc"')

    def test_2(self) -> None:
        with self.assertRaises(HeaderSyntaxError):
            parse_header('snippet `abc "desc"')

    def test_3(self) -> None:
        with self.assertRaises(HeaderSyntaxError):
            parse_header('snippet foo "desc" xyz')

    def test_4(self) -> None:
        with self.assertRaises(HeaderSyntaxError):
            parse_header("snippet `(abc`")

    def test_5(self) -> None:
        with self.assertRaises(HeaderSyntaxError):
            parse_header("snippet")

    def test_6(self) -> None:
        with self.assertRaises(HeaderSyntaxError) as ctx:
            parse_header('snippet "desc"', lineno=7)
        self.assertIn("lineno: 7", str(ctx.exception))
