from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RunResult(BaseModel):
    """Outcome of one pipeline run, as written by ``--report``."""

    run_id: str
    scope: str
    master_variable: str
    master: str
    buckets: Dict[str, str] = Field(default_factory=dict)
    overflow: List[str] = Field(default_factory=list)
    pool: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    changed: bool = False
    dry_run: bool = False
    backup_path: Optional[str] = None
