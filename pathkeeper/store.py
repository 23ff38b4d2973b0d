"""Variable store collaborators: where the master and bucket values live.

The pipeline only ever calls ``get``/``set``/``ensure``; which backend answers
is decided once at the process boundary by :func:`make_store`.
"""

from __future__ import annotations

import ctypes
import enum
import os
from typing import Any, Dict, Optional

import yaml
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pathkeeper.utils import get_logger

logger = get_logger(__name__)


class Scope(str, enum.Enum):
    USER = "user"
    MACHINE = "machine"


class VariableStore:
    """Read/write access to persisted variables at a given scope."""

    def get(self, name: str, scope: Scope) -> Optional[str]:
        raise NotImplementedError

    def set(self, name: str, value: str, scope: Scope) -> None:
        raise NotImplementedError

    def ensure(self, name: str, scope: Scope) -> str:
        """Return the value of ``name``, creating it empty when absent."""
        value = self.get(name, scope)
        if value is None:
            logger.info("store: creating empty variable %s (%s)", name, Scope(scope).value)
            self.set(name, "", scope)
            return ""
        return value

    def flush(self) -> None:
        """Publish finished writes to running processes; a no-op for most stores."""


class MemoryStore(VariableStore):
    def __init__(self, values: Optional[Dict[str, Dict[str, str]]] = None):
        self._values: Dict[str, Dict[str, str]] = {s.value: {} for s in Scope}
        for scope, mapping in (values or {}).items():
            self._values[Scope(scope).value].update(mapping)

    def _scope(self, scope: Scope) -> Dict[str, str]:
        return self._values[Scope(scope).value]

    def get(self, name: str, scope: Scope) -> Optional[str]:
        # Windows variable names are case-insensitive
        for k, v in self._scope(scope).items():
            if k.casefold() == name.casefold():
                return v
        return None

    def set(self, name: str, value: str, scope: Scope) -> None:
        values = self._scope(scope)
        for k in list(values):
            if k.casefold() == name.casefold():
                values[k] = value
                return
        values[name] = value

    def dump(self) -> Dict[str, Dict[str, str]]:
        return {k: dict(v) for k, v in self._values.items()}


class YamlFileStore(MemoryStore):
    """A YAML document ``{user: {...}, machine: {...}}`` standing in for the OS store."""

    def __init__(self, path: str):
        self.path = path
        data: Dict[str, Any] = {}
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        values = {
            scope.value: {str(k): "" if v is None else str(v) for k, v in (data.get(scope.value) or {}).items()}
            for scope in Scope
        }
        super().__init__(values)

    def set(self, name: str, value: str, scope: Scope) -> None:
        super().set(name, value, scope)
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.dump(), f, allow_unicode=True, sort_keys=True)


# ---------- Windows registry ----------

_ENV_KEYS = {
    Scope.USER: ("HKEY_CURRENT_USER", r"Environment"),
    Scope.MACHINE: ("HKEY_LOCAL_MACHINE", r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"),
}


def _require_windows_registry():
    if os.name != "nt":
        raise RuntimeError("The registry store requires Windows; use a file store elsewhere.")
    import winreg
    return winreg


def is_admin() -> bool:
    if os.name != "nt":
        return os.geteuid() == 0
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except OSError:
        return False


def broadcast_env_change():
    if os.name != "nt":
        return
    HWND_BROADCAST = 0xFFFF
    WM_SETTINGCHANGE = 0x1A
    SMTO_ABORTIFHUNG = 0x0002
    result = ctypes.c_ulong()
    ok = ctypes.windll.user32.SendMessageTimeoutW(
        HWND_BROADCAST,
        WM_SETTINGCHANGE,
        0,
        "Environment",
        SMTO_ABORTIFHUNG,
        5000,
        ctypes.byref(result),
    )
    if not ok:
        logger.warning("store: WM_SETTINGCHANGE broadcast timed out; new shells still see the change")


class RegistryStore(VariableStore):
    def __init__(self):
        self._winreg = _require_windows_registry()
        self._dirty = False

    def _open(self, scope: Scope, access: int):
        root_name, path = _ENV_KEYS[Scope(scope)]
        root = getattr(self._winreg, root_name)
        return self._winreg.CreateKeyEx(root, path, 0, access)

    def get(self, name: str, scope: Scope) -> Optional[str]:
        try:
            with self._open(scope, self._winreg.KEY_READ) as k:
                val, _ = self._winreg.QueryValueEx(k, name)
                return str(val)
        except FileNotFoundError:
            return None

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(OSError) & retry_if_not_exception_type(PermissionError),
        reraise=True,
    )
    def set(self, name: str, value: str, scope: Scope) -> None:
        # REG_EXPAND_SZ keeps %VAR% tokens expandable at consumption time
        vtype = self._winreg.REG_EXPAND_SZ if "%" in (value or "") else self._winreg.REG_SZ
        with self._open(scope, self._winreg.KEY_SET_VALUE) as k:
            self._winreg.SetValueEx(k, name, 0, vtype, value)
        self._dirty = True

    def flush(self) -> None:
        if self._dirty:
            broadcast_env_change()
            self._dirty = False


def make_store(store_cfg: Optional[Dict[str, Any]]) -> VariableStore:
    store_cfg = store_cfg or {}
    kind = store_cfg.get("type", "registry")
    if kind == "registry":
        return RegistryStore()
    if kind == "file":
        path = store_cfg.get("path")
        if not path:
            raise ValueError("store.path is required for the file store")
        return YamlFileStore(path)
    if kind == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown store type: {kind}")
