from __future__ import annotations

from typing import Dict, List, Optional

from pathkeeper.stages.cleaner import clean_entries
from pathkeeper.stages.normalize import DEFAULT_DELIMITER
from pathkeeper.store import Scope, VariableStore
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


def read_bucket_state(
    store: VariableStore,
    bucket_names: List[str],
    scope: Scope,
    variable_map: Optional[Dict[str, str]] = None,
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> List[List[str]]:
    """Current bucket contents in bucket order, passed through the cleaner.

    Absent buckets read as empty; creating them is left to the persist step.
    """
    contents: List[List[str]] = []
    for name in bucket_names:
        raw = store.get(name, scope) or ""
        contents.append(clean_entries(raw, variable_map, delimiter=delimiter))
    logger.info("buckets: %s", ", ".join(f"{n}={len(c)}" for n, c in zip(bucket_names, contents)))
    return contents
