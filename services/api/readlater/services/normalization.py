from __future__ import annotations

import re

from bs4 import BeautifulSoup

_ws = re.compile(r"\s+")
_non_alnum = re.compile(r"[^a-z0-9]+")


def html_to_text(content: str) -> str:
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    return soup.get_text(" ", strip=True)


def count_words(content: str | None, *, is_html: bool = True) -> int:
    """Count whitespace-separated tokens of the readable text."""
    text = html_to_text(content or "") if is_html else (content or "")
    return len([token for token in _ws.split(text) if token])


def slugify(s: str, max_length: int = 80) -> str:
    s = (s or "").strip().lower()
    s = _non_alnum.sub("-", s).strip("-")
    return s[:max_length].rstrip("-")
