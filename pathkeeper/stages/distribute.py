from __future__ import annotations

import typing as t
from dataclasses import dataclass, field

from pathkeeper.stages.normalize import DEFAULT_DELIMITER
from pathkeeper.utils import get_logger

logger = get_logger(__name__)


@dataclass
class Bucket:
    name: str
    entries: t.List[str] = field(default_factory=list)
    length: int = 0

    def add(self, entry: str, delimiter: str = DEFAULT_DELIMITER) -> None:
        self.length += len(entry) + (len(delimiter) if self.entries else 0)
        self.entries.append(entry)

    def value(self, delimiter: str = DEFAULT_DELIMITER) -> str:
        return delimiter.join(self.entries)


def distribute(
    pool: t.List[str],
    bucket_names: t.List[str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
) -> t.List[Bucket]:
    """Greedy length balancing: each entry goes to the currently shortest bucket.

    Ties go to the lowest ordinal, so the same pool always yields the same
    assignment. Pool order is preserved inside each bucket.
    """
    if not bucket_names:
        raise ValueError("distribute requires at least one bucket")
    buckets = [Bucket(name=n) for n in bucket_names]
    for entry in pool:
        target = min(buckets, key=lambda b: b.length)
        target.add(entry, delimiter)

    logger.info(
        "distribute: entries=%d lengths=%s",
        len(pool),
        [b.length for b in buckets],
    )
    return buckets
