"""
Text helpers for extracted articles and log previews.
"""
from __future__ import annotations

import re

_INLINE_WS_RE = re.compile(r"[ \t\f\v\u00a0]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def clean_extracted_text(text: str) -> str:
    """
    Normalize whitespace in text pulled out of HTML.

    Collapses runs of spaces/tabs, trims every line and keeps at most one
    blank line between paragraphs, so the speech provider doesn't read
    long silences into layout whitespace.

    >>> clean_extracted_text("  Title\\n\\n\\n\\n  First   para.  \\n")
    'Title\\n\\nFirst para.'
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_WS_RE.sub(" ", line).strip() for line in text.split("\n")]
    joined = "\n".join(lines)
    return _BLANK_LINES_RE.sub("\n\n", joined).strip()


def preview(text: str, max_chars: int) -> str:
    """First ``max_chars`` characters on one line, for logging."""
    if max_chars <= 0:
        return ""
    flat = " ".join(text[: max_chars * 2].split())
    if len(flat) <= max_chars:
        return flat
    return flat[:max_chars].rstrip() + "..."
