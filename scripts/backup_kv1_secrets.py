#!/usr/bin/env python3
"""
Back up KV v1 secrets under SECRET_PATH to BACKUP_DIR as JSON files.

Usage:
  VAULT_ADDR=... VAULT_TOKEN=... python scripts/backup_kv1_secrets.py --help
"""
from vault_hygiene.cli import backup_main

if __name__ == "__main__":
    raise SystemExit(backup_main())
