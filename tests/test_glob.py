"""Tests for glob pattern matching."""

import pytest

from tiercache.glob import compile_glob, escape_glob, filter_keys


class TestCompileGlob:
    def test_star(self) -> None:
        matches = compile_glob("a*c")
        assert matches("abc")
        assert matches("ac")
        assert not matches("abd")

    def test_question_mark(self) -> None:
        matches = compile_glob("a?c")
        assert matches("abc")
        assert not matches("ac")
        assert not matches("abbc")

    def test_whole_string_only(self) -> None:
        assert not compile_glob("b")("abc")
        assert not compile_glob("NS:foo*")("NS:barfoo")
        assert compile_glob("NS:foo*")("NS:foo")

    @pytest.mark.parametrize("pattern, key", [
        ("a.c", "a.c"),
        ("a+b", "a+b"),
        ("(x)", "(x)"),
        ("$1^", "$1^"),
        ("a|b", "a|b"),
    ])
    def test_regex_metacharacters_are_literal(self, pattern: str, key: str) -> None:
        assert compile_glob(pattern)(key)

    def test_dot_is_not_a_wildcard(self) -> None:
        assert not compile_glob("a.c")("abc")

    def test_character_class(self) -> None:
        matches = compile_glob("h[ae]llo")
        assert matches("hello")
        assert matches("hallo")
        assert not matches("hillo")

    def test_negated_class(self) -> None:
        assert compile_glob("h[^e]llo")("hallo")
        assert not compile_glob("h[^e]llo")("hello")
        assert not compile_glob("h[!e]llo")("hello")

    def test_range(self) -> None:
        assert compile_glob("h[a-c]llo")("hbllo")
        assert not compile_glob("h[a-c]llo")("hdllo")

    def test_backslash_escapes(self) -> None:
        matches = compile_glob("a\\*b")
        assert matches("a*b")
        assert not matches("axb")

    def test_unterminated_class_is_literal(self) -> None:
        assert compile_glob("[abc")("[abc")

    def test_star_crosses_colons(self) -> None:
        assert compile_glob("NS:*")("NS:a:b:c")


def test_filter_keys_keeps_order() -> None:
    keys = ["NS:foo2", "NS:bar", "NS:foo1", "OTHER:foo3"]
    assert filter_keys(keys, "NS:foo*") == ["NS:foo2", "NS:foo1"]


@pytest.mark.parametrize("text", ["user?", "a*", "x[1]", "back\\slash", "plain"])
def test_escaped_text_matches_only_itself(text: str) -> None:
    matches = compile_glob(escape_glob(text) + ":*")
    assert matches(f"{text}:k")
    assert not matches("users:k")
    assert not matches("ab:k")
    assert not matches("x1:k")
