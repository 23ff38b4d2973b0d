"""Comparison keys and variable-reference classification for path entries."""

from __future__ import annotations

import re
from typing import Iterable, List

DEFAULT_DELIMITER = ";"

_VAR_NAME = r"[A-Za-z0-9_()]+"
_VAR_REF_RE = re.compile(r"^%" + _VAR_NAME + r"%(?:[\\/].*)?$", re.DOTALL)
_VAR_NAME_RE = re.compile(r"^" + _VAR_NAME + r"$")


def strip_quotes(s: str) -> str:
    """Trim whitespace and drop one layer of surrounding double quotes."""
    s = (s or "").strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        s = s[1:-1]
    return s


def normalize(s: str) -> str:
    """Return the canonical key used everywhere two entries are compared."""
    if not s:
        return ""
    key = strip_quotes(s)
    # a bare root separator is its own key
    if len(key) > 1 and key.endswith(("\\", "/")):
        key = key[:-1]
    return key.casefold()


def is_valid_variable_name(name: str) -> bool:
    return bool(_VAR_NAME_RE.match(name or ""))


def reference_token(name: str) -> str:
    """Token that re-expands to the variable ``name`` in the consuming shell."""
    return f"%{name}%"


def is_variable_reference(entry: str) -> bool:
    # %NAME% optionally followed by a separator and a sub-path
    return bool(_VAR_REF_RE.match(strip_quotes(entry)))


def split_entries(raw: str, delimiter: str = DEFAULT_DELIMITER) -> List[str]:
    """Split on the delimiter, trim pieces and drop empty ones."""
    out: List[str] = []
    for piece in (raw or "").split(delimiter):
        piece = piece.strip()
        if piece:
            out.append(piece)
    return out


def join_entries(entries: Iterable[str], delimiter: str = DEFAULT_DELIMITER) -> str:
    return delimiter.join(entries)


def serialized_length(entries: List[str], delimiter: str = DEFAULT_DELIMITER) -> int:
    """Length of ``entries`` joined by the delimiter, without building the string."""
    if not entries:
        return 0
    return sum(len(e) for e in entries) + len(delimiter) * (len(entries) - 1)
