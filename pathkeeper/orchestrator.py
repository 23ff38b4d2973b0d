import os
import json
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional

from pathkeeper.models import RunResult
from pathkeeper.stages.buckets import read_bucket_state
from pathkeeper.stages.cleaner import clean_entries
from pathkeeper.stages.composer import compose
from pathkeeper.stages.distribute import Bucket, distribute
from pathkeeper.stages.normalize import DEFAULT_DELIMITER, join_entries, reference_token
from pathkeeper.stages.overflow import handle_overflow
from pathkeeper.stages.pool import build_pool
from pathkeeper.stages.varmap import build_variable_map
from pathkeeper.store import RegistryStore, Scope, VariableStore, is_admin, make_store
from pathkeeper.utils import get_logger, load_config, validate_config, write_backup

logger = get_logger(__name__)


class ElevationRequired(PermissionError):
    """System-wide scope was requested from a non-elevated process."""


@dataclass
class PathPlan:
    master: List[str] = field(default_factory=list)
    buckets: List[Bucket] = field(default_factory=list)
    overflow: List[str] = field(default_factory=list)
    pool: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    settled: bool = False


def plan_path(
    master_raw: str,
    bucket_contents: List[List[str]],
    variable_map: Dict[str, str],
    *,
    bucket_names: List[str],
    max_length: int,
    delimiter: str = DEFAULT_DELIMITER,
) -> PathPlan:
    """Run the pure core of the pipeline on values already read from the store.

    ``bucket_contents`` must come from :func:`read_bucket_state` (cleaned, in
    bucket order). Nothing here touches the store.
    """
    master_entries = clean_entries(master_raw, variable_map, delimiter=delimiter)
    placeholders = [reference_token(n) for n in bucket_names]

    cand = compose(
        master_entries,
        bucket_contents,
        placeholders,
        max_length=max_length,
        delimiter=delimiter,
    )
    warnings: List[str] = []
    if cand.protected_over_budget:
        warnings.append(
            f"variable references alone take {cand.protected_length} chars, over the {max_length} budget"
        )

    master, overflow = handle_overflow(cand.entries, max_length, delimiter=delimiter)
    pool = build_pool(bucket_contents, overflow, variable_map, bucket_names, delimiter=delimiter)

    current = [e for entries in bucket_contents for e in entries]
    if not overflow and pool == current:
        # Nothing new to place: keep the current assignment so reruns are a fixed point
        buckets = [Bucket(name=n) for n in bucket_names]
        for b, entries in zip(buckets, bucket_contents):
            for e in entries:
                b.add(e, delimiter)
        settled = True
        logger.info("distribute: skipped, pool unchanged; keeping current bucket layout without rebalancing")
    else:
        buckets = distribute(pool, bucket_names, delimiter=delimiter)
        settled = False

    return PathPlan(
        master=master,
        buckets=buckets,
        overflow=overflow,
        pool=pool,
        warnings=warnings,
        settled=settled,
    )


def _apply_overrides(cfg: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> None:
    if not overrides:
        return

    for key in ("scope", "master_variable", "max_length", "delimiter"):
        if overrides.get(key) is not None:
            cfg[key] = overrides[key]
    if overrides.get("bucket_names"):
        cfg["bucket_names"] = list(overrides["bucket_names"])

    # Backup
    if overrides.get("backup_enabled") is not None or overrides.get("backup_dir") is not None:
        bk = cfg.setdefault("backup", {})
        if overrides.get("backup_enabled") is not None:
            bk["enabled"] = overrides["backup_enabled"]
        if overrides.get("backup_dir") is not None:
            bk["dir"] = overrides["backup_dir"]

    # Store
    if overrides.get("store_file") is not None:
        cfg["store"] = {"type": "file", "path": overrides["store_file"]}


def check_elevation(scope: Scope, store: VariableStore) -> None:
    if Scope(scope) is Scope.MACHINE and isinstance(store, RegistryStore) and not is_admin():
        raise ElevationRequired("machine scope requires an elevated (administrator) shell")


def _persist(
    store: VariableStore,
    scope: Scope,
    values: Dict[str, str],
    before: Dict[str, Optional[str]],
    bucket_names: List[str],
) -> List[str]:
    """Write buckets first, then the master; skip values that did not change."""
    for name in bucket_names:
        store.ensure(name, scope)
    written: List[str] = []
    for name, value in values.items():
        if (before.get(name) or "") == value:
            continue
        store.set(name, value, scope)
        written.append(name)
    store.flush()
    return written


def execute_pipeline(
    cfg: Dict[str, Any],
    store: VariableStore,
    environ: Mapping[str, str],
    run_id: str,
    *,
    dry_run: bool = False,
) -> RunResult:
    """Read, plan, back up and write back one scope's search path."""
    validate_config(cfg)
    scope = Scope(cfg["scope"])
    master_name = cfg["master_variable"]
    bucket_names = list(cfg["bucket_names"])
    delimiter = cfg["delimiter"]
    max_length = int(cfg["max_length"])
    logger.info(
        "config loaded scope=%s master=%s buckets=%s max_length=%d",
        scope.value,
        master_name,
        ",".join(bucket_names),
        max_length,
    )

    check_elevation(scope, store)

    t0 = time.monotonic()
    before: Dict[str, Optional[str]] = {n: store.get(n, scope) for n in [master_name] + bucket_names}
    variable_map = build_variable_map(environ, delimiter=delimiter, exclude=[master_name] + bucket_names)
    bucket_contents = read_bucket_state(store, bucket_names, scope, variable_map, delimiter=delimiter)
    logger.info("read variables=%d targets=%d took_ms=%d", len(before), len(variable_map), int((time.monotonic()-t0)*1000))

    t1 = time.monotonic()
    plan = plan_path(
        before[master_name] or "",
        bucket_contents,
        variable_map,
        bucket_names=bucket_names,
        max_length=max_length,
        delimiter=delimiter,
    )
    logger.info(
        "planned master_entries=%d evicted=%d pool=%d settled=%s took_ms=%d",
        len(plan.master),
        len(plan.overflow),
        len(plan.pool),
        plan.settled,
        int((time.monotonic()-t1)*1000),
    )

    values: Dict[str, str] = {b.name: b.value(delimiter) for b in plan.buckets}
    values[master_name] = join_entries(plan.master, delimiter)
    missing = [n for n in bucket_names if before.get(n) is None]
    changed = missing + [n for n, v in values.items() if n not in missing and (before.get(n) or "") != v]

    result = RunResult(
        run_id=run_id,
        scope=scope.value,
        master_variable=master_name,
        master=values[master_name],
        buckets={b.name: values[b.name] for b in plan.buckets},
        overflow=plan.overflow,
        pool=plan.pool,
        warnings=plan.warnings,
        changed=bool(changed),
        dry_run=dry_run,
    )

    if dry_run:
        logger.info("dry run -> nothing written (would change: %s)", ", ".join(changed) or "none")
        return result
    if not changed:
        logger.info("already settled -> nothing to write")
        return result

    backup_cfg = cfg.get("backup") or {}
    if backup_cfg.get("enabled", True):
        result.backup_path = write_backup(before, backup_cfg, scope.value)
        logger.info("backup written: %s", result.backup_path)

    written = _persist(store, scope, values, before, bucket_names)
    logger.info("written variables=%s", ",".join(written) or "none")
    return result


def write_report(result: RunResult, report_path: str) -> None:
    path = Path(report_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    logger.info("report written: %s", path)


def run_once(
    config_path: Optional[str] = None,
    *,
    overrides: Optional[Dict[str, Any]] = None,
    store: Optional[VariableStore] = None,
    environ: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
    report_path: Optional[str] = None,
) -> RunResult:
    """Execute pipeline once with given config file path."""
    run_id = uuid.uuid4().hex[:8]
    logger.info("=== run start id=%s ===", run_id)

    try:
        cfg = load_config(config_path)
        _apply_overrides(cfg, overrides)
        if overrides:
            # overrides bypass the file, so validate the merged result again
            validate_config(cfg)
        if store is None:
            store = make_store(cfg.get("store"))
        result = execute_pipeline(
            cfg,
            store,
            os.environ if environ is None else environ,
            run_id,
            dry_run=dry_run,
        )
        if report_path:
            write_report(result, report_path)
        return result

    except ElevationRequired as e:
        logger.error("Elevation check failed: %s", e)
        raise
    except Exception as e:
        logger.error("Pipeline execution failed: %s", e)
        raise
    finally:
        logger.info("=== run end id=%s ===", run_id)
