from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from pathkeeper.stages.normalize import (
    DEFAULT_DELIMITER,
    is_valid_variable_name,
    normalize,
    reference_token,
)
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


def build_variable_map(
    snapshot: Mapping[str, str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    exclude: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """Map normalized expanded values to the ``%NAME%`` token of their variable.

    Variables are visited in name order so the first-wins tie-break does not
    depend on how the snapshot happens to enumerate. Empty values and values
    holding the delimiter stand for lists, not single entries, and are skipped.
    Names in ``exclude`` (the master and bucket variables) are never targets.
    """
    excluded = {n.casefold() for n in (exclude or ())}
    out: Dict[str, str] = {}
    skipped = 0
    for name in sorted(snapshot, key=lambda n: (n.casefold(), n)):
        value = snapshot[name]
        if name.casefold() in excluded or not is_valid_variable_name(name):
            skipped += 1
            continue
        if not value or not value.strip() or delimiter in value:
            skipped += 1
            continue
        key = normalize(value)
        if key and key not in out:
            out[key] = reference_token(name)

    logger.debug("varmap: targets=%d skipped=%d", len(out), skipped)
    return out
