#!/usr/bin/env python3
"""
Delete KV v1 secrets under SECRET_PATH after verifying their backups. Dry run unless DRY_RUN=false.

Usage:
  VAULT_ADDR=... VAULT_TOKEN=... python scripts/delete_kv1_secrets.py --help
"""
from vault_hygiene.cli import delete_main

if __name__ == "__main__":
    raise SystemExit(delete_main())
