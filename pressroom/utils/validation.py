"""
Input normalization for user-authored text.

Two flavours are provided:
- sanitize_comment(): cleans a comment before it is moderated and stored.
  Keeps the author's words and single line breaks; drops NUL bytes and
  collapses runs of blank space.
- normalize_text(): aggressive comparison form (collapse all whitespace,
  lowercase) used when deciding whether two records carry the same content.
"""

from __future__ import annotations
import re
from typing import Any

_WHITESPACE_RUN = re.compile(r"\s+")
_HORIZONTAL_RUN = re.compile(r"[ \t]+")
_BLANK_LINES = re.compile(r"\n{3,}")


def sanitize_comment(content: str | None) -> str:
    """
    Clean free text before moderation:
    - strip NUL bytes
    - collapse runs of spaces/tabs to a single space
    - collapse 3+ consecutive newlines to exactly two
    - trim leading/trailing whitespace

    NUL bytes are removed before trimming so a leading "\\0 " cannot leave
    whitespace behind; this keeps sanitize_comment(sanitize_comment(x)) equal
    to sanitize_comment(x).
    """
    t = (content or "").replace("\0", "")
    t = _HORIZONTAL_RUN.sub(" ", t)
    t = _BLANK_LINES.sub("\n\n", t)
    return t.strip()


def normalize_text(value: Any) -> str:
    """Collapse whitespace, trim and lowercase. None/empty become ""."""
    if value is None:
        return ""
    return _WHITESPACE_RUN.sub(" ", str(value)).strip().lower()


def is_blank(value: str | None) -> bool:
    return not (value or "").strip()
