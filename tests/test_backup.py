import json

from vault_hygiene.backup import backup_secret, run_backup, serialize_secret
from vault_hygiene.client import VaultGateway


def _files(root):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*.json"))


def test_one_file_per_leaf(make_cfg, gateway):
    cfg = make_cfg()
    summary = run_backup(cfg, gateway)
    assert summary.succeeded == 4 and summary.failed == 0
    assert _files(cfg.backup_path) == [
        "secret/app/db.json",
        "secret/app/nested/api.json",
        "secret/other/with_space_.json",
        "secret/top.json",
    ]
    doc = json.loads((cfg.backup_path / "secret/app/db.json").read_text())
    assert doc["data"] == {"user": "app", "password": "pw"}
    assert "request_id" not in doc


def test_single_leaf_tree(make_cfg, client_factory):
    cfg = make_cfg(secret_path="secret/")
    gateway = VaultGateway(client_factory({"secret/only": {"a": 1}}))
    run_backup(cfg, gateway)
    assert _files(cfg.backup_path) == ["secret/only.json"]


def test_empty_tree_writes_nothing(make_cfg, client_factory):
    cfg = make_cfg()
    summary = run_backup(cfg, VaultGateway(client_factory({})))
    assert summary.total == 0
    assert cfg.backup_path.is_dir()
    assert _files(cfg.backup_path) == []


def test_failed_fetch_leaves_no_file(make_cfg, fake_client, gateway):
    cfg = make_cfg()
    stale = cfg.backup_path / "secret/top.json"
    stale.parent.mkdir(parents=True)
    stale.write_text("partial")
    fake_client.fail_read.add("secret/top")

    summary = run_backup(cfg, gateway)

    assert summary.failed == 1 and summary.succeeded == 3
    assert not stale.exists()
    assert "secret/app/db.json" in _files(cfg.backup_path)


def test_missing_secret_counts_as_failure(tmp_path, gateway):
    assert backup_secret(gateway, "secret/ghost", tmp_path) is False
    assert not (tmp_path / "secret/ghost.json").exists()


def test_rerun_is_byte_identical(make_cfg, gateway):
    cfg = make_cfg()
    run_backup(cfg, gateway)
    first = {p: (cfg.backup_path / p).read_bytes() for p in _files(cfg.backup_path)}
    run_backup(cfg, gateway)
    second = {p: (cfg.backup_path / p).read_bytes() for p in _files(cfg.backup_path)}
    assert first == second


def test_no_temp_files_left_behind(make_cfg, gateway):
    cfg = make_cfg()
    run_backup(cfg, gateway)
    assert not list(cfg.backup_path.rglob("*.tmp"))


def test_serialize_secret_is_sorted_and_strips_request_id():
    text = serialize_secret({"request_id": "abc", "data": {"b": 1, "a": 2}, "lease_id": ""})
    assert text.endswith("\n")
    assert json.loads(text) == {"data": {"a": 2, "b": 1}, "lease_id": ""}
    assert text.index('"a"') < text.index('"b"')
