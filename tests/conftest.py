# tests/conftest.py
import logging
import uuid
from typing import Any, Dict, List, Optional

import pytest
from hvac.exceptions import Forbidden, InternalServerError

from vault_hygiene.client import VaultGateway
from vault_hygiene.config import HygieneConfig


class FakeSys:
    def __init__(self, owner: "FakeVaultClient"):
        self.owner = owner

    def list_acl_policies(self):
        if self.owner.fail_policy_list:
            raise InternalServerError("policy list failed")
        keys = list(self.owner.policies)
        return {"data": {"keys": keys}, "keys": keys}

    def read_acl_policy(self, name):
        if name in self.owner.fail_policy_read or name not in self.owner.policies:
            raise Forbidden(f"permission denied: {name}")
        return {"data": {"name": name, "policy": self.owner.policies[name]}}

    def create_or_update_acl_policy(self, name, policy, pretty_print=True):
        self.owner.policy_writes.append((name, policy))
        if name in self.owner.fail_policy_write:
            raise InternalServerError(f"failed to parse policy: {name}")
        self.owner.policies[name] = policy


class FakeVaultClient:
    """
    In-memory stand-in for hvac.Client covering the logical KV v1 and sys/policies/acl calls.

    `secrets` maps full leaf paths ("secret/app/db") to their data dicts.
    """

    def __init__(self, secrets: Optional[Dict[str, Dict[str, Any]]] = None, policies: Optional[Dict[str, str]] = None):
        self.secrets: Dict[str, Dict[str, Any]] = dict(secrets or {})
        self.policies: Dict[str, str] = dict(policies or {})
        self.fail_list: set = set()
        self.fail_read: set = set()
        self.fail_delete: set = set()
        self.fail_policy_read: set = set()
        self.fail_policy_write: set = set()
        self.fail_policy_list = False
        self.listed: List[str] = []
        self.read_calls: List[str] = []
        self.deleted: List[str] = []
        self.delete_calls: List[str] = []
        self.policy_writes: List[tuple] = []
        self.sys = FakeSys(self)

    def list(self, path):
        self.listed.append(path)
        if path in self.fail_list:
            raise Forbidden(f"permission denied: {path}")
        keys: List[str] = []
        for full in self.secrets:
            if not full.startswith(path):
                continue
            rest = full[len(path):]
            child = rest.split("/", 1)[0] + "/" if "/" in rest else rest
            if child not in keys:
                keys.append(child)
        if not keys:
            return None
        return {"data": {"keys": keys}}

    def read(self, path):
        self.read_calls.append(path)
        if path in self.fail_read:
            raise InternalServerError(f"read failed: {path}")
        if path not in self.secrets:
            return None
        return {
            "request_id": str(uuid.uuid4()),
            "lease_id": "",
            "renewable": False,
            "lease_duration": 2764800,
            "data": dict(self.secrets[path]),
            "wrap_info": None,
            "warnings": None,
            "auth": None,
        }

    def delete(self, path):
        self.delete_calls.append(path)
        if path in self.fail_delete:
            raise InternalServerError(f"delete failed: {path}")
        self.secrets.pop(path, None)
        self.deleted.append(path)


@pytest.fixture
def fake_client():
    return FakeVaultClient(
        secrets={
            "secret/app/db": {"user": "app", "password": "pw"},
            "secret/app/nested/api": {"key": "k1"},
            "secret/top": {"value": "t"},
            "secret/other/with space!": {"x": "y"},
        }
    )


@pytest.fixture
def gateway(fake_client):
    return VaultGateway(fake_client)


@pytest.fixture
def make_cfg(tmp_path):
    def _make(**overrides) -> HygieneConfig:
        env = {"VAULT_ADDR": "http://vault.test:8200", "VAULT_TOKEN": "s.test-token"}
        overrides.setdefault("backup_dir", str(tmp_path / "backup"))
        return HygieneConfig.load(environ=env, overrides=overrides)

    return _make


@pytest.fixture
def base_env(tmp_path):
    return {
        "VAULT_ADDR": "http://vault.test:8200",
        "VAULT_TOKEN": "s.test-token",
        "BACKUP_DIR": str(tmp_path / "backup"),
    }


@pytest.fixture
def client_factory():
    return FakeVaultClient


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI tests install a handler bound to the captured stream; drop it after each test."""
    yield
    logger = logging.getLogger("vault_hygiene")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
