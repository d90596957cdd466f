"""
Tests for the text helpers in flowlens.text.
"""
from flowlens.text import ELLIPSIS, collapse_whitespace, join_texts, one_line, truncate


def test_one_line_collapses_whitespace():
    assert one_line("const a =\n    1;") == "const a = 1;"


def test_one_line_truncates_with_ellipsis():
    """The result never exceeds the limit, ellipsis included."""
    out = one_line("function foo() {\n  return 42;\n}", 20)
    assert out == "function foo() { re" + ELLIPSIS
    assert len(out) == 20


def test_one_line_handles_empty_input():
    assert one_line(None) == ""
    assert one_line("   ") == ""
    assert one_line("abc", 0) == ""


def test_truncate_uses_marker():
    assert truncate("abcdefghij", 8) == "abcde..."
    assert truncate("short", 8) == "short"


def test_collapse_and_join():
    assert collapse_whitespace("  a \t b\n c ") == "a b c"
    assert join_texts(["a", None, "", "b"], " / ") == "a / b"
