"""
Back up every KV v1 secret under a path to <backup_dir>/<sanitized path>.json.

Each file holds the Vault read response minus the per-request `request_id`, serialized with
sorted keys so that rerunning against an unchanged tree produces byte-identical files.
A leaf whose read fails ends up with no file at all.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from .client import VAULT_ERRORS, VaultGateway
from .config import HygieneConfig
from .summary import RunSummary
from .walker import backup_file_for, walk_secrets

logger = logging.getLogger(__name__)

VOLATILE_FIELDS = ("request_id",)

BACKUP_ERRORS = VAULT_ERRORS + (LookupError, OSError, TypeError, ValueError)


def serialize_secret(response: Dict[str, Any]) -> str:
    doc = {k: v for k, v in response.items() if k not in VOLATILE_FIELDS}
    return json.dumps(doc, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def _atomic_write(dest: Path, text: str) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=str(dest.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, dest)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def backup_secret(gateway: VaultGateway, secret_path: str, backup_dir: Path) -> bool:
    dest = backup_file_for(backup_dir, secret_path)
    logger.info("Backing up: %s", secret_path)
    try:
        response = gateway.read_secret(secret_path)
        if response is None:
            raise LookupError("secret not found")
        text = serialize_secret(response)
        dest.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(dest, text)
    except BACKUP_ERRORS as exc:
        logger.error("✗ Failed to backup: %s (%s)", secret_path, exc)
        dest.unlink(missing_ok=True)
        return False
    logger.info("✓ Successfully backed up: %s", secret_path, extra={"status": "ok"})
    return True


def run_backup(cfg: HygieneConfig, gateway: VaultGateway) -> RunSummary:
    backup_dir = cfg.backup_path
    backup_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Starting backup of KV1 secrets from path: %s", cfg.secret_path)
    logger.info("Vault address: %s", cfg.vault_addr)
    logger.info("Backup directory: %s", backup_dir)

    summary = RunSummary()

    def action(leaf: str) -> None:
        if backup_secret(gateway, leaf, backup_dir):
            summary.succeeded += 1
        else:
            summary.failed += 1

    walk_secrets(gateway, cfg.secret_path, action)
    logger.info("Backup completed! Files saved to: %s (%s)", backup_dir, summary.describe(), extra={"status": "ok"})
    return summary
