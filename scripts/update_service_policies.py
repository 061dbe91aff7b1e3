#!/usr/bin/env python3
"""
Strip secret/ grants from service policies and add read on aws_dmz/creds/<service>. Dry run unless DRY_RUN=false.

Usage:
  VAULT_ADDR=... VAULT_TOKEN=... python scripts/update_service_policies.py --help
"""
from vault_hygiene.cli import policies_main

if __name__ == "__main__":
    raise SystemExit(policies_main())
