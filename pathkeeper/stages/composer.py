from __future__ import annotations

import typing as t
from dataclasses import dataclass, field

from pathkeeper.stages.normalize import (
    DEFAULT_DELIMITER,
    is_variable_reference,
    normalize,
    serialized_length,
)
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


@dataclass
class Candidate:
    entries: t.List[str] = field(default_factory=list)
    protected_length: int = 0
    max_length: t.Optional[int] = None

    @property
    def protected_over_budget(self) -> bool:
        return self.max_length is not None and self.protected_length > self.max_length


def protected_length(entries: t.List[str], delimiter: str = DEFAULT_DELIMITER) -> int:
    return serialized_length([e for e in entries if is_variable_reference(e)], delimiter)


def compose(
    master_entries: t.List[str],
    bucket_contents: t.List[t.List[str]],
    placeholder_tokens: t.List[str],
    *,
    max_length: t.Optional[int] = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> Candidate:
    """Build the candidate master: base entries, then one placeholder per bucket.

    Entries already housed in a bucket and stray placeholder tokens are removed
    from the base so the trailing block is the only place placeholders appear.
    """
    housed = {normalize(e) for entries in bucket_contents for e in entries}
    placeholders = {normalize(p) for p in placeholder_tokens}

    base: t.List[str] = []
    dropped = 0
    for e in master_entries:
        key = normalize(e)
        if key in housed or key in placeholders:
            dropped += 1
            continue
        base.append(e)

    entries = base + list(placeholder_tokens)
    cand = Candidate(
        entries=entries,
        protected_length=protected_length(entries, delimiter),
        max_length=max_length,
    )
    logger.info(
        "compose: base=%d dropped=%d placeholders=%d length=%d",
        len(base),
        dropped,
        len(placeholder_tokens),
        serialized_length(entries, delimiter),
    )
    if cand.protected_over_budget:
        logger.warning(
            "compose: variable references alone take %d chars, over the %d budget; they are kept anyway",
            cand.protected_length,
            max_length,
        )
    return cand
