"""
Command-line entry points.

  vault-backup-kv1                 back up KV v1 secrets under SECRET_PATH to BACKUP_DIR
  vault-delete-kv1                 delete KV v1 secrets under SECRET_PATH (dry run by default)
  vault-update-service-policies    rewrite service policies (dry run by default)

Usage:
  VAULT_ADDR=... VAULT_TOKEN=... vault-backup-kv1 --path secret/app/
  VAULT_ADDR=... VAULT_TOKEN=... DRY_RUN=false vault-delete-kv1
  VAULT_ADDR=... VAULT_TOKEN=... vault-update-service-policies --no-dry-run

Every option can also come from the environment or a YAML file (see vault_hygiene.config).
Exit status is 1 on any fatal precondition (bad config, Vault unreachable, missing backup
directory, declined confirmation, policy listing failure) and 0 otherwise, even when single
secrets or policies failed.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from .backup import run_backup
from .client import VaultGateway, hvac_client
from .config import HygieneConfig
from .delete import confirm_destructive_run, run_delete
from .errors import PreconditionError
from .policy import PolicyProcessor, confirm_policy_update
from .utils.logging import configure_logging

logger = logging.getLogger(__name__)

SECRET_BACKUP_DIR = "./vault-backup"
POLICY_BACKUP_DIR = "./policy-backup"

GatewayFactory = Callable[[HygieneConfig], VaultGateway]


def _default_gateway(cfg: HygieneConfig) -> VaultGateway:
    return VaultGateway(hvac_client(cfg))


def _base_parser(description: str, with_dry_run: bool, with_path: bool = True) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=description)
    p.add_argument("--config", type=Path, default=None, help="YAML config file (overrides VAULT_HYGIENE_CONFIG)")
    p.add_argument("--backup-dir", default=None, help="Backup directory (BACKUP_DIR)")
    if with_path:
        p.add_argument("--path", dest="secret_path", default=None, help="KV v1 path to walk, e.g. secret/ (SECRET_PATH)")
    if with_dry_run:
        p.add_argument(
            "--dry-run",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Only report what would change (DRY_RUN, default true)",
        )
    p.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (LOG_LEVEL)",
    )
    p.add_argument("--log-format", default=None, choices=["text", "json"], help="Log output format (LOG_FORMAT)")
    return p


def _load_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]], default_backup_dir: str) -> HygieneConfig:
    overrides: Dict[str, Any] = {
        "backup_dir": args.backup_dir,
        "log_level": args.log_level,
        "log_format": args.log_format,
        "secret_path": getattr(args, "secret_path", None),
        "service_path": getattr(args, "service_path", None),
        "dry_run": getattr(args, "dry_run", None),
    }
    return HygieneConfig.load(
        environ=environ,
        config_file=args.config,
        default_backup_dir=default_backup_dir,
        overrides=overrides,
    )


def _banner(title: str, lines: List[str]) -> None:
    logger.warning("=" * 43)
    logger.warning("    %s", title)
    logger.warning("=" * 43)
    for line in lines:
        logger.info(line)


def _run(parser: argparse.ArgumentParser, argv: Optional[List[str]], environ, default_backup_dir: str, body) -> int:
    args = parser.parse_args(argv)
    try:
        cfg = _load_config(args, environ, default_backup_dir)
    except PreconditionError as exc:
        configure_logging()
        logger.error("Error: %s", exc)
        return 1
    configure_logging(cfg.log_level, cfg.log_format)
    try:
        body(cfg)
    except PreconditionError as exc:
        logger.error("Error: %s", exc)
        return 1
    return 0


def backup_main(
    argv: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    gateway_factory: GatewayFactory = _default_gateway,
) -> int:
    parser = _base_parser("Back up KV v1 secrets recursively to local JSON files", with_dry_run=False)

    def body(cfg: HygieneConfig) -> None:
        gateway = gateway_factory(cfg)
        run_backup(cfg, gateway)

    return _run(parser, argv, environ, SECRET_BACKUP_DIR, body)


def delete_main(
    argv: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    gateway_factory: GatewayFactory = _default_gateway,
    prompt: Callable[[str], str] = input,
) -> int:
    parser = _base_parser("Delete KV v1 secrets recursively after verifying their backups", with_dry_run=True)

    def body(cfg: HygieneConfig) -> None:
        gateway = gateway_factory(cfg)
        _banner(
            "VAULT SECRET DELETION",
            [
                f"Vault address: {cfg.vault_addr}",
                f"Secret path: {cfg.secret_path}",
                f"Backup directory: {cfg.backup_dir}",
                f"Dry run mode: {str(cfg.dry_run).lower()}",
            ],
        )
        if cfg.dry_run:
            logger.warning("Running in DRY RUN mode - no secrets will be deleted")
        else:
            confirm_destructive_run(cfg, prompt)
        run_delete(cfg, gateway)

    return _run(parser, argv, environ, SECRET_BACKUP_DIR, body)


def policies_main(
    argv: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    gateway_factory: GatewayFactory = _default_gateway,
    prompt: Callable[[str], str] = input,
) -> int:
    parser = _base_parser(
        "Strip secret/ grants from service policies and grant read on <mount>/creds/<service>",
        with_dry_run=True,
        with_path=False,
    )
    parser.add_argument("--service-path", dest="service_path", default=None, help="Service policy name prefix (SERVICE_PATH)")

    def body(cfg: HygieneConfig) -> None:
        gateway = gateway_factory(cfg)
        _banner(
            "VAULT POLICY UPDATE",
            [
                f"Vault address: {cfg.vault_addr}",
                f"Service path pattern: {cfg.service_path}",
                f"Backup directory: {cfg.backup_dir}",
                f"Dry run mode: {str(cfg.dry_run).lower()}",
            ],
        )
        if cfg.dry_run:
            logger.warning("Running in DRY RUN mode - no policies will be modified")
        else:
            confirm_policy_update(cfg, prompt)
        PolicyProcessor(cfg, gateway).run()

    return _run(parser, argv, environ, POLICY_BACKUP_DIR, body)

