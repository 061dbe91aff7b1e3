import pytest

from vault_hygiene.client import VaultGateway
from vault_hygiene.walker import backup_file_for, iter_leaf_paths, sanitize_path, walk_secrets


def _recursive_order(client, path):
    # reference: the plain recursive depth-first walk
    resp = client.list(path)
    out = []
    if not resp:
        return out
    for child in resp["data"]["keys"]:
        if child.endswith("/"):
            out.extend(_recursive_order(client, path + child))
        else:
            out.append(path + child)
    return out


def test_sanitize_path_keeps_safe_chars():
    assert sanitize_path("secret/app-1/db_main") == "secret/app-1/db_main"
    assert sanitize_path("secret/with space!") == "secret/with_space_"
    assert sanitize_path("secret/../etc") == "secret/__/etc"


def test_backup_file_for(tmp_path):
    assert backup_file_for(tmp_path, "secret/a b") == tmp_path / "secret/a_b.json"


def test_walk_order_matches_recursive_dfs(fake_client, gateway, client_factory):
    leaves = list(iter_leaf_paths(gateway, "secret/"))
    assert leaves == [
        "secret/app/db",
        "secret/app/nested/api",
        "secret/top",
        "secret/other/with space!",
    ]
    assert leaves == _recursive_order(client_factory(fake_client.secrets), "secret/")


def test_walk_deep_tree(client_factory):
    depth = 200
    leaf = "secret/" + "/".join(f"d{i}" for i in range(depth)) + "/leaf"
    gateway = VaultGateway(client_factory({leaf: {"v": 1}}))
    assert list(iter_leaf_paths(gateway, "secret/")) == [leaf]


def test_walk_empty_root_yields_nothing(caplog, client_factory):
    gateway = VaultGateway(client_factory({}))
    assert list(iter_leaf_paths(gateway, "secret/")) == []
    assert "Could not list secrets at path: secret/" in caplog.text


def test_listing_failure_skips_subtree(fake_client, gateway, caplog):
    fake_client.fail_list.add("secret/app/")
    leaves = list(iter_leaf_paths(gateway, "secret/"))
    assert leaves == ["secret/top", "secret/other/with space!"]
    assert "Could not list secrets at path: secret/app/" in caplog.text


def test_root_must_be_directory(gateway):
    with pytest.raises(ValueError):
        list(iter_leaf_paths(gateway, "secret"))


def test_walk_secrets_invokes_action_per_leaf(gateway):
    seen = []
    count = walk_secrets(gateway, "secret/app/", seen.append)
    assert count == 2
    assert seen == ["secret/app/db", "secret/app/nested/api"]
