"""
Delete every KV v1 secret under a path, one leaf at a time, after checking its backup.

Per-leaf outcome (DeleteState):
  dry_run              - dry run; only the intent is reported, no file or store access
  verification_failed  - backup missing or not valid JSON; the secret is left alone
  deleted              - backup verified and the delete call succeeded
  delete_failed        - backup verified but Vault rejected the delete

Destructive runs must pass confirm_destructive_run() first: the backup directory must exist
and the operator must type DELETE_SECRETS, then answer y/Y to the final question.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Callable

from .client import VAULT_ERRORS, VaultGateway
from .config import HygieneConfig
from .errors import BackupDirMissingError, BackupVerificationError, ConfirmationDeclined
from .summary import RunSummary
from .utils.prompt import ask
from .walker import backup_file_for, walk_secrets

logger = logging.getLogger(__name__)

CONFIRM_PHRASE = "DELETE_SECRETS"
CANCELLED = "Deletion cancelled."


class DeleteState(str, Enum):
    DRY_RUN = "dry_run"
    VERIFICATION_FAILED = "verification_failed"
    DELETED = "deleted"
    DELETE_FAILED = "delete_failed"


def verify_backup(backup_dir: Path, secret_path: str) -> Path:
    """Return the backup file for `secret_path`; raise BackupVerificationError unless it holds valid JSON."""
    backup_file = backup_file_for(backup_dir, secret_path)
    if not backup_file.is_file():
        raise BackupVerificationError(f"Backup file not found: {backup_file}")
    try:
        json.loads(backup_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise BackupVerificationError(f"Invalid JSON in backup file: {backup_file}") from exc
    return backup_file


def delete_secret(gateway: VaultGateway, secret_path: str, backup_dir: Path, dry_run: bool) -> DeleteState:
    if dry_run:
        logger.info("[DRY RUN] Would delete: %s", secret_path, extra={"status": "dry_run"})
        return DeleteState.DRY_RUN

    try:
        verify_backup(backup_dir, secret_path)
    except BackupVerificationError as exc:
        logger.error("Error: %s", exc)
        logger.error("Skipping deletion of %s - backup verification failed", secret_path)
        return DeleteState.VERIFICATION_FAILED

    logger.info("Deleting: %s", secret_path)
    try:
        gateway.delete_secret(secret_path)
    except VAULT_ERRORS as exc:
        logger.error("✗ Failed to delete: %s (%s)", secret_path, exc)
        return DeleteState.DELETE_FAILED
    logger.info("✓ Successfully deleted: %s", secret_path, extra={"status": "ok"})
    return DeleteState.DELETED


def confirm_destructive_run(cfg: HygieneConfig, prompt: Callable[[str], str] = input) -> None:
    logger.warning("WARNING: This will permanently delete all secrets under %s", cfg.secret_path)
    logger.warning("Make sure you have verified your backups before proceeding!")

    if not cfg.backup_path.is_dir():
        raise BackupDirMissingError(
            f"Backup directory does not exist: {cfg.backup_path}. Please run the backup tool first!"
        )

    answer = ask(prompt, f"Do you want to continue? Type '{CONFIRM_PHRASE}' to confirm: ", CANCELLED)
    if answer.strip() != CONFIRM_PHRASE:
        raise ConfirmationDeclined(CANCELLED)

    answer = ask(prompt, "Final confirmation: Are you absolutely sure? (y/N): ", CANCELLED)
    if answer.strip() not in ("y", "Y"):
        raise ConfirmationDeclined(CANCELLED)


def run_delete(cfg: HygieneConfig, gateway: VaultGateway) -> RunSummary:
    """Walk cfg.secret_path and delete (or, in dry run, announce) each leaf. Confirmation happens in the caller."""
    summary = RunSummary(dry_run=cfg.dry_run)
    backup_dir = cfg.backup_path
    logger.info("Starting deletion process...")

    def action(leaf: str) -> None:
        state = delete_secret(gateway, leaf, backup_dir, cfg.dry_run)
        if state in (DeleteState.DELETED, DeleteState.DRY_RUN):
            summary.succeeded += 1
        elif state is DeleteState.VERIFICATION_FAILED:
            summary.skipped += 1
        else:
            summary.failed += 1

    walk_secrets(gateway, cfg.secret_path, action)

    if cfg.dry_run:
        logger.info("Dry run completed! (%s)", summary.describe(), extra={"status": "ok"})
        logger.warning("To actually delete secrets, rerun with DRY_RUN=false")
    else:
        logger.info("Deletion process completed! (%s)", summary.describe(), extra={"status": "ok"})
    return summary
