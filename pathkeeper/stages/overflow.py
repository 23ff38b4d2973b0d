from __future__ import annotations

from typing import List, Tuple

from pathkeeper.stages.normalize import DEFAULT_DELIMITER, is_variable_reference, serialized_length
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


def handle_overflow(
    entries: List[str],
    max_length: int,
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> Tuple[List[str], List[str]]:
    """Evict trailing literal entries until the master fits ``max_length``.

    Scans right to left. Variable references are always kept; a literal entry
    is kept only if it still fits in front of what is already kept, otherwise
    it goes to the overflow list. Both lists keep the original order.
    """
    if serialized_length(entries, delimiter) <= max_length:
        return list(entries), []

    keep: List[str] = []
    overflow: List[str] = []
    keep_len = 0
    for e in reversed(entries):
        grown = len(e) + (keep_len + len(delimiter) if keep else 0)
        if is_variable_reference(e) or grown <= max_length:
            keep.append(e)
            keep_len = grown
        else:
            overflow.append(e)

    keep.reverse()
    overflow.reverse()
    logger.info(
        "overflow: kept=%d evicted=%d length=%d max=%d",
        len(keep),
        len(overflow),
        keep_len,
        max_length,
    )
    return keep, overflow
