import os
import json
import copy
import datetime as dt
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional, List

import yaml
from jsonschema import validate, Draft202012Validator
from jsonschema.exceptions import ValidationError

# ---------- Time helpers ----------

def now_local():
    return dt.datetime.now().astimezone()

# ---------- Config ----------

DEFAULT_CONFIG: Dict[str, Any] = {
    "scope": "user",
    "master_variable": "Path",
    "bucket_names": ["PATH_1", "PATH_2", "PATH_3", "PATH_4"],
    "max_length": 2000,
    "delimiter": ";",
    "backup": {"enabled": True, "dir": "backups"},
    "store": {"type": "registry"},
}

def load_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

def validate_config(cfg: dict):
    here = os.path.dirname(os.path.abspath(__file__))
    schema_path = os.path.join(here, "schemas", "config.schema.json")
    schema = json.loads(load_file(schema_path))
    try:
        validate(instance=cfg, schema=schema, cls=Draft202012Validator)
    except ValidationError as e:
        raise ValueError(f"Config validation error: {e.message} at {list(e.path)}") from e

    buckets = [n.casefold() for n in cfg["bucket_names"]]
    if len(set(buckets)) != len(buckets):
        raise ValueError("Config validation error: bucket names differ only by case at ['bucket_names']")
    if cfg["master_variable"].casefold() in buckets:
        raise ValueError(
            f"Config validation error: master variable {cfg['master_variable']!r} is also a bucket at ['bucket_names']"
        )

def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load a YAML config on top of the built-in defaults and validate it.

    Nested ``backup`` and ``store`` sections are merged key by key, so a file
    that only sets ``backup.dir`` keeps ``backup.enabled`` from the defaults.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path:
        loaded = yaml.safe_load(load_file(path)) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config validation error: top level of {path} must be a mapping")
        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(cfg.get(key), dict):
                cfg[key].update(value)
            else:
                cfg[key] = value
    validate_config(cfg)
    return cfg

# ---------- Backup writer ----------

def write_backup(values: Dict[str, Optional[str]], backup_cfg: dict, scope: str) -> str:
    """Write a human-readable snapshot of ``values`` and return its path."""
    out_dir = backup_cfg.get("dir") or "backups"
    os.makedirs(out_dir, exist_ok=True)
    stamp = now_local()
    ts = stamp.strftime("%Y%m%dT%H%M%S%z")
    backup_path = os.path.join(out_dir, f"path_backup_{scope}_{ts}.txt")

    lines: List[str] = [f"[{scope} environment backup {stamp.isoformat()}]"]
    for name, value in values.items():
        lines.append(f"{name}: {value or ''}")

    with open(backup_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
    return backup_path

# ---------- Logging ----------

_LOGGER_INITIALIZED = False

class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": dt.datetime.fromtimestamp(record.created, dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _build_logger():
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    # Default to a local, writable logs directory
    log_dir = os.getenv("LOG_DIR", "logs")
    json_mode = os.getenv("LOG_JSON", "false").lower() == "true"

    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level, logging.INFO))

    ch = logging.StreamHandler()
    ch.setLevel(logger.level)

    fh = TimedRotatingFileHandler(os.path.join(log_dir, "pathkeeper.log"), when="D", backupCount=7, encoding="utf-8")
    fh.setLevel(logger.level)

    if json_mode:
        fmt = JsonFormatter()
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    ch.setFormatter(fmt)
    fh.setFormatter(fmt)
    logger.addHandler(ch)
    logger.addHandler(fh)

    _LOGGER_INITIALIZED = True

def get_logger(name: str = None) -> logging.Logger:
    _build_logger()
    return logging.getLogger(name if name else __name__)
