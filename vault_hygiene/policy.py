"""
Rewrite "service" ACL policies: drop every `path "secret/..." { ... }` block and grant read on
`<creds_mount>/creds/<service>`.

A policy is a service policy when its name starts with the service prefix (default "service/")
or ends with "-service". For each one the original text is backed up to
<backup_dir>/<name with '/' -> '_'>.hcl before anything else happens.

Usage:
  from vault_hygiene.policy import remove_path_blocks, inject_capability
  text = inject_capability(remove_path_blocks(text), "billing")
"""
from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from .client import VAULT_ERRORS, VaultGateway
from .config import HygieneConfig
from .errors import ConfirmationDeclined, EmptyPolicyError, PolicyListError
from .summary import RunSummary
from .utils.prompt import ask

logger = logging.getLogger(__name__)

SERVICE_SUFFIX = "-service"
CONFIRM_PHRASE = "UPDATE_POLICIES"
CANCELLED = "Policy update cancelled."
SEPARATOR = "-" * 40

READ_ERRORS = VAULT_ERRORS + (KeyError, TypeError)


def is_service_policy(name: str, service_prefix: str = "service/") -> bool:
    return name.startswith(service_prefix) or name.endswith(SERVICE_SUFFIX)


def derive_service_name(policy_name: str, service_prefix: str = "service/") -> str:
    """service/foo -> foo, bar-service -> bar, anything else unchanged. First match wins."""
    if policy_name.startswith(service_prefix) and len(policy_name) > len(service_prefix):
        return policy_name[len(service_prefix):]
    if policy_name.endswith(SERVICE_SUFFIX) and len(policy_name) > len(SERVICE_SUFFIX):
        return policy_name[: -len(SERVICE_SUFFIX)]
    return policy_name


def _block_opener(prefix: str) -> re.Pattern:
    return re.compile(r'^\s*path\s*"' + re.escape(prefix) + r'[^"]*"\s*\{')


def _brace_delta(text: str) -> int:
    return text.count("{") - text.count("}")


def remove_path_blocks(text: str, prefix: str = "secret/") -> str:
    """
    Drop every rule block whose path pattern starts with `prefix`.

    Block extent is tracked by brace depth, so bodies containing nested braces are removed
    whole. Depth counting starts at the opening brace and covers the rest of that line, so a
    block opened and closed on one line ends there and does not swallow the next block.
    """
    opener = _block_opener(prefix)
    kept = []
    depth = 0
    for line in text.splitlines(keepends=True):
        if depth > 0:
            depth += _brace_delta(line)
            if depth <= 0:
                depth = 0
            continue
        m = opener.match(line)
        if m:
            depth = 1 + _brace_delta(line[m.end():])
            if depth < 0:
                depth = 0
            continue
        kept.append(line)
    return "".join(kept)


def capability_path(service_name: str, mount: str = "aws_dmz") -> str:
    return f"{mount}/creds/{service_name}"


def capability_block(service_name: str, mount: str = "aws_dmz") -> str:
    return f'path "{capability_path(service_name, mount)}" {{\n  capabilities = ["read"]\n}}\n'


def inject_capability(text: str, service_name: str, mount: str = "aws_dmz") -> str:
    """
    Append a read grant on <mount>/creds/<service_name> unless that path already appears
    anywhere in `text` (plain substring check, comments included).
    """
    if capability_path(service_name, mount) in text:
        return text
    block = capability_block(service_name, mount)
    if not text.strip():
        return block
    return text.rstrip("\n") + "\n\n" + block


def validate_policy_text(name: str, text: str) -> str:
    if not text.strip():
        raise EmptyPolicyError(f"Modified policy is empty for: {name}")
    return text


def rewrite_policy(text: str, service_name: str, mount: str = "aws_dmz") -> str:
    return inject_capability(remove_path_blocks(text), service_name, mount)


def policy_backup_file(backup_dir: Path, policy_name: str) -> Path:
    return Path(backup_dir) / f"{policy_name.replace('/', '_')}.hcl"


def backup_policy(backup_dir: Path, policy_name: str, text: str) -> Path:
    backup_file = policy_backup_file(backup_dir, policy_name)
    backup_file.parent.mkdir(parents=True, exist_ok=True)
    backup_file.write_text(text, encoding="utf-8")
    logger.info("✓ Backed up policy to: %s", backup_file, extra={"status": "ok"})
    return backup_file


def commit_policy(gateway: VaultGateway, backup_dir: Path, policy_name: str, text: str) -> bool:
    """
    Stage the new text next to the backup, then write it to Vault from the staged file.
    On failure the staged file stays on disk for inspection.
    """
    staged = policy_backup_file(backup_dir, policy_name).with_suffix(".staged.hcl")
    staged.write_text(text, encoding="utf-8")
    logger.info("Updating policy: %s", policy_name)
    try:
        gateway.write_policy(policy_name, staged.read_text(encoding="utf-8"))
    except VAULT_ERRORS as exc:
        logger.error("✗ Failed to update policy: %s (%s)", policy_name, exc)
        logger.error("Policy content that failed (kept at %s):\n%s\n%s%s", staged, SEPARATOR, text, SEPARATOR)
        return False
    staged.unlink()
    logger.info("✓ Successfully updated policy: %s", policy_name, extra={"status": "ok"})
    return True


class PolicyProcessor:
    def __init__(self, cfg: HygieneConfig, gateway: VaultGateway, out: Optional[TextIO] = None):
        self.cfg = cfg
        self.gateway = gateway
        self.out = out or sys.stdout
        self.backup_dir = cfg.backup_path

    def process(self, policy_name: str) -> bool:
        logger.info("Processing policy: %s", policy_name, extra={"status": "info"})
        try:
            original = self.gateway.read_policy(policy_name)
        except READ_ERRORS as exc:
            logger.error("✗ Failed to read policy: %s (%s)", policy_name, exc)
            return False

        service_name = derive_service_name(policy_name, self.cfg.service_path)
        logger.info("  Service name: %s", service_name, extra={"status": "info"})

        try:
            backup_policy(self.backup_dir, policy_name, original)
            modified = validate_policy_text(
                policy_name, rewrite_policy(original, service_name, self.cfg.creds_mount)
            )
        except EmptyPolicyError as exc:
            logger.error("✗ Error: %s", exc)
            return False
        except OSError as exc:
            logger.error("✗ Failed to back up policy: %s (%s)", policy_name, exc)
            return False

        if self.cfg.dry_run:
            logger.info("[DRY RUN] Would update policy: %s", policy_name, extra={"status": "dry_run"})
            print("Modified policy content:", file=self.out)
            print(SEPARATOR, file=self.out)
            print(modified.rstrip("\n"), file=self.out)
            print(SEPARATOR, file=self.out)
            return True

        try:
            return commit_policy(self.gateway, self.backup_dir, policy_name, modified)
        except OSError as exc:
            logger.error("✗ Failed to stage policy: %s (%s)", policy_name, exc)
            return False

    def run(self) -> RunSummary:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        summary = RunSummary(dry_run=self.cfg.dry_run)
        logger.info("Starting policy update process...")
        try:
            names = self.gateway.list_policies()
        except READ_ERRORS as exc:
            raise PolicyListError(f"Failed to list policies: {exc}") from exc
        for name in names:
            if not is_service_policy(name, self.cfg.service_path):
                continue
            if self.process(name):
                summary.succeeded += 1
            else:
                summary.failed += 1

        if self.cfg.dry_run:
            logger.info("Dry run completed! (%s)", summary.describe(), extra={"status": "ok"})
            logger.warning("To actually update policies, rerun with DRY_RUN=false")
        else:
            logger.info("Policy update process completed! (%s)", summary.describe(), extra={"status": "ok"})
            logger.info("Policy backups saved to: %s", self.backup_dir, extra={"status": "info"})
        return summary


def confirm_policy_update(cfg: HygieneConfig, prompt: Callable[[str], str] = input) -> None:
    logger.warning("WARNING: This will modify all service policies")
    logger.warning("Make sure you have reviewed the changes before proceeding!")
    logger.info("Changes that will be made:")
    logger.info("1. Remove all references to 'secret/' paths")
    logger.info("2. Add read capability to '%s'", capability_path("<service-name>", cfg.creds_mount))
    answer = ask(prompt, f"Do you want to continue? Type '{CONFIRM_PHRASE}' to confirm: ", CANCELLED)
    if answer.strip() != CONFIRM_PHRASE:
        raise ConfirmationDeclined(CANCELLED)
