import pytest

from pathkeeper.orchestrator import _apply_overrides
from pathkeeper.utils import DEFAULT_CONFIG, load_config, validate_config


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_file_values_merge_over_defaults(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text(
        "scope: machine\nbucket_names: [EXT_A, EXT_B]\nbackup:\n  dir: /tmp/bk\n",
        encoding="utf-8",
    )
    cfg = load_config(str(p))
    assert cfg["scope"] == "machine"
    assert cfg["bucket_names"] == ["EXT_A", "EXT_B"]
    assert cfg["backup"] == {"enabled": True, "dir": "/tmp/bk"}
    assert cfg["max_length"] == 2000
    assert DEFAULT_CONFIG["backup"]["dir"] == "backups"


@pytest.mark.parametrize(
    "bad",
    [
        "scope: global\n",
        "max_length: 0\n",
        "delimiter: ';;'\n",
        "bucket_names: []\n",
        "bucket_names: [A, A]\n",
        "bucket_names: ['MY BUCKET']\n",
        "store:\n  type: file\n",
        "colour: blue\n",
        "- just\n- a list\n",
        "bucket_names: [Path, PATH_2]\n",
        "master_variable: path_1\n",
        "bucket_names: [EXT, ext]\n",
    ],
)
def test_invalid_configs_are_rejected(tmp_path, bad):
    p = tmp_path / "cfg.yaml"
    p.write_text(bad, encoding="utf-8")
    with pytest.raises(ValueError, match="Config validation error"):
        load_config(str(p))


def test_overrides_apply_on_top(tmp_path):
    cfg = load_config(None)
    _apply_overrides(
        cfg,
        {
            "scope": "machine",
            "bucket_names": ["X1"],
            "max_length": 900,
            "backup_enabled": False,
            "backup_dir": None,
            "store_file": str(tmp_path / "env.yaml"),
            "master_variable": None,
        },
    )
    validate_config(cfg)
    assert cfg["scope"] == "machine"
    assert cfg["bucket_names"] == ["X1"]
    assert cfg["max_length"] == 900
    assert cfg["master_variable"] == "Path"
    assert cfg["backup"] == {"enabled": False, "dir": "backups"}
    assert cfg["store"] == {"type": "file", "path": str(tmp_path / "env.yaml")}


def test_master_colliding_with_bucket_is_rejected_before_any_write():
    from pathkeeper.orchestrator import execute_pipeline
    from pathkeeper.store import MemoryStore, Scope

    cfg = load_config(None)
    cfg["bucket_names"] = ["Path", "PATH_2"]
    cfg["store"] = {"type": "memory"}
    store = MemoryStore({"user": {"Path": r"C:\a"}})
    with pytest.raises(ValueError, match="is also a bucket"):
        execute_pipeline(cfg, store, {}, "t1")
    assert store.get("Path", Scope.USER) == r"C:\a"
