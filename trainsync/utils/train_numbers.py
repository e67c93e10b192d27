# trainsync/utils/train_numbers.py
from __future__ import annotations

import re
from typing import Any

__all__ = [
    "clean_train_number",
    "train_number_sort_key",
]


_SPACES_RE = re.compile(r"\s+")


def clean_train_number(value: Any) -> str:
    """
    Normalize a train identifier cell: trimmed, inner whitespace collapsed.
    Returns "" for blank cells so callers can skip the row.
    """
    s = "" if value is None else str(value).strip()
    if not s:
        return ""
    return _SPACES_RE.sub(" ", s)


def train_number_sort_key(value: str | None) -> tuple[int, int, str]:
    """Numeric train numbers first (by value), then anything else alphabetically."""
    s = clean_train_number(value)
    try:
        return (0, int(s), s)
    except ValueError:
        return (1, 0, s)
