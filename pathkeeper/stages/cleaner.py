from __future__ import annotations

from typing import Dict, List, Optional

from pathkeeper.stages.normalize import DEFAULT_DELIMITER, join_entries, normalize, split_entries


def substitute(entry: str, variable_map: Dict[str, str]) -> str:
    """Replace a whole entry by the variable token that expands to it."""
    return variable_map.get(normalize(entry), entry)


def dedup_entries(entries: List[str]) -> List[str]:
    """Stable dedup by normalized key; the first spelling seen survives."""
    seen = set()
    out: List[str] = []
    for e in entries:
        key = normalize(e)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(e)
    return out


def clean_entries(
    raw: str,
    variable_map: Optional[Dict[str, str]] = None,
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> List[str]:
    variable_map = variable_map or {}
    return dedup_entries([substitute(p, variable_map) for p in split_entries(raw, delimiter)])


def clean(
    raw: str,
    variable_map: Optional[Dict[str, str]] = None,
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """Split, substitute, dedup and rejoin a delimited string.

    Pure: safe to call on the master value, bucket values or single fragments.
    """
    return join_entries(clean_entries(raw, variable_map, delimiter=delimiter), delimiter)
