import re
from typing import Iterable, Optional

ELLIPSIS = "…"

_WS = re.compile(r"\s+")


def collapse_whitespace(text: Optional[str]) -> str:
    return _WS.sub(" ", text or "").strip()


def one_line(code: Optional[str], max_length: int = 80) -> str:
    """Collapse whitespace and cut to at most `max_length` characters.

    >>> one_line("function foo() {\\n  return 42;\\n}", 20)
    'function foo() { re…'
    """
    normalized = collapse_whitespace(code)
    if len(normalized) <= max_length:
        return normalized
    if max_length <= 0:
        return ""
    return normalized[: max_length - 1] + ELLIPSIS


def truncate(text: str, max_length: int, marker: str = "...") -> str:
    """Cut `text` so that it plus `marker` fits in `max_length`."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - len(marker))] + marker


def join_texts(texts: Iterable[Optional[str]], separator: str = ", ") -> str:
    return separator.join(t for t in texts if t)
