from __future__ import annotations

import re
from typing import Dict, List, Optional

from pathkeeper.stages.cleaner import dedup_entries, substitute
from pathkeeper.stages.normalize import DEFAULT_DELIMITER, split_entries, strip_quotes
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


def _placeholder_pattern(bucket_names: List[str]) -> Optional[re.Pattern]:
    if not bucket_names:
        return None
    names = "|".join(re.escape(n) for n in bucket_names)
    return re.compile(r"^%(?:" + names + r")%(?:[\\/].*)?$", re.IGNORECASE | re.DOTALL)


def is_bucket_reference(entry: str, bucket_names: List[str]) -> bool:
    """True for ``%BUCKET%`` or ``%BUCKET%\\sub`` of any configured bucket."""
    pat = _placeholder_pattern(bucket_names)
    return bool(pat and pat.match(strip_quotes(entry)))


def build_pool(
    bucket_contents: List[List[str]],
    overflow: List[str],
    variable_map: Optional[Dict[str, str]],
    bucket_names: List[str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> List[str]:
    """Merge bucket contents and evicted entries into one redistribution pool.

    Bucket self and cross references are dropped so no bucket can expand into
    itself. A substituted entry may still carry the delimiter, so results are
    re-split and every piece joins the pool on its own.
    """
    variable_map = variable_map or {}

    merged: List[str] = []
    refs = 0
    for entries in list(bucket_contents) + [overflow]:
        for e in entries:
            if is_bucket_reference(e, bucket_names):
                refs += 1
                continue
            merged.append(e)

    pool: List[str] = []
    for e in dedup_entries(merged):
        pool.extend(split_entries(substitute(e, variable_map), delimiter))
    pool = dedup_entries([e for e in pool if not is_bucket_reference(e, bucket_names)])

    logger.info(
        "pool: entries=%d overflow=%d bucket_refs_dropped=%d",
        len(pool),
        len(overflow),
        refs,
    )
    return pool
