"""
Vault access for the hygiene tools.

hvac_client() builds an authenticated hvac.Client from a HygieneConfig and fails fast
(VaultUnavailableError) when the server is unreachable or the token is rejected.

VaultGateway narrows hvac to the handful of KV v1 and ACL policy calls the tools use.
KV v1 is addressed through the logical API with full paths ("secret/app/db"), so no
mount-point splitting is needed.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import hvac
import requests
from hvac.exceptions import VaultError

from .config import HygieneConfig
from .errors import VaultUnavailableError

logger = logging.getLogger(__name__)

# errors that mean "this one item failed", as opposed to programming errors
VAULT_ERRORS = (VaultError, requests.exceptions.RequestException)


def hvac_client(cfg: HygieneConfig) -> hvac.Client:
    client = hvac.Client(
        url=cfg.vault_addr,
        token=cfg.vault_token,
        namespace=cfg.vault_namespace,
        verify=cfg.tls_verify,
    )
    try:
        authenticated = client.is_authenticated()
    except VAULT_ERRORS as exc:
        raise VaultUnavailableError(f"Cannot connect to Vault server at {cfg.vault_addr}: {exc}") from exc
    if not authenticated:
        raise VaultUnavailableError(f"Vault auth failed at {cfg.vault_addr}; check VAULT_TOKEN")
    logger.debug("Authenticated to Vault at %s", cfg.vault_addr)
    return client


class VaultGateway:
    def __init__(self, client: Any):
        self.client = client

    def list_children(self, path: str) -> Optional[List[str]]:
        """Child names under a directory-like path, or None when the path cannot be listed."""
        resp = self.client.list(path)
        if not resp:
            return None
        keys = (resp.get("data") or {}).get("keys")
        if keys is None:
            return None
        return list(keys)

    def read_secret(self, path: str) -> Optional[Dict[str, Any]]:
        return self.client.read(path)

    def delete_secret(self, path: str) -> None:
        self.client.delete(path)

    def list_policies(self) -> List[str]:
        resp = self.client.sys.list_acl_policies()
        return list(resp["data"]["keys"])

    def read_policy(self, name: str) -> str:
        resp = self.client.sys.read_acl_policy(name)
        return resp["data"]["policy"]

    def write_policy(self, name: str, text: str) -> None:
        self.client.sys.create_or_update_acl_policy(name=name, policy=text)
