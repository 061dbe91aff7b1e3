"""
Configuration for the vault-hygiene tools: YAML file + environment + CLI overrides.

Usage:
  from vault_hygiene.config import HygieneConfig
  cfg = HygieneConfig.load(default_backup_dir="./vault-backup", overrides={"dry_run": False})

Precedence (later wins): dataclass defaults, YAML file (VAULT_HYGIENE_CONFIG or --config),
environment variables, command-line overrides. The resulting object is frozen and passed
explicitly to every component; nothing below the CLI reads os.environ.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import ConfigError

CONFIG_ENV = "VAULT_HYGIENE_CONFIG"

_ENV_MAP = {
    "vault_addr": "VAULT_ADDR",
    "vault_token": "VAULT_TOKEN",
    "vault_namespace": "VAULT_NAMESPACE",
    "vault_cacert": "VAULT_CACERT",
    "vault_skip_verify": "VAULT_SKIP_VERIFY",
    "backup_dir": "BACKUP_DIR",
    "secret_path": "SECRET_PATH",
    "service_path": "SERVICE_PATH",
    "creds_mount": "CREDS_MOUNT",
    "dry_run": "DRY_RUN",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
}

_BOOL_FIELDS = {"vault_skip_verify", "dry_run"}
_NULLABLE_FIELDS = {"vault_namespace", "vault_cacert"}
_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def parse_bool(name: str, raw: Union[str, bool]) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false), got: {raw!r}")


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return raw


@dataclass(frozen=True)
class HygieneConfig:
    vault_addr: str = ""
    vault_token: str = ""
    vault_namespace: Optional[str] = None
    vault_cacert: Optional[str] = None
    vault_skip_verify: bool = False
    backup_dir: str = "./vault-backup"
    secret_path: str = "secret/"
    service_path: str = "service/"
    creds_mount: str = "aws_dmz"
    dry_run: bool = True
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def load(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        config_file: Optional[Path] = None,
        default_backup_dir: str = "./vault-backup",
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "HygieneConfig":
        environ = os.environ if environ is None else environ
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {"backup_dir": default_backup_dir}

        if config_file is None and environ.get(CONFIG_ENV):
            config_file = Path(environ[CONFIG_ENV])
        if config_file is not None:
            for k, v in _load_yaml(config_file).items():
                if k not in known:
                    raise ConfigError(f"Unknown key in config file {config_file}: {k}")
                if v is None and k not in _NULLABLE_FIELDS:
                    raise ConfigError(f"{k} must not be empty in {config_file}")
                values[k] = v

        for field_name, env_name in _ENV_MAP.items():
            raw = environ.get(env_name)
            if raw is not None and raw != "":
                values[field_name] = raw

        for k, v in (overrides or {}).items():
            if v is not None:
                values[k] = v

        for k in _BOOL_FIELDS & values.keys():
            values[k] = parse_bool(_ENV_MAP[k], values[k])
        for k, v in values.items():
            if k not in _BOOL_FIELDS and v is not None:
                values[k] = str(v)

        return cls(**values).normalized()

    def normalized(self) -> "HygieneConfig":
        """Validate and normalize all fields. Raises ConfigError on invalid configuration."""
        if not self.vault_addr.strip():
            raise ConfigError("VAULT_ADDR environment variable must be set")
        if not self.vault_token.strip():
            raise ConfigError("VAULT_TOKEN environment variable must be set")
        if not self.backup_dir.strip():
            raise ConfigError("BACKUP_DIR must be non-empty")

        secret_path = self.secret_path.strip()
        if not secret_path:
            raise ConfigError("SECRET_PATH must be non-empty")
        if not secret_path.endswith("/"):
            secret_path += "/"

        service_path = self.service_path.strip()
        if not service_path.endswith("/"):
            raise ConfigError(f"SERVICE_PATH must end with '/', got: {self.service_path!r}")

        creds_mount = self.creds_mount.strip().strip("/")
        if not creds_mount:
            raise ConfigError("CREDS_MOUNT must be non-empty")

        log_level = self.log_level.strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigError(f"LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}")
        log_format = self.log_format.strip().lower()
        if log_format not in {"text", "json"}:
            raise ConfigError("LOG_FORMAT must be one of: text, json")

        return replace(
            self,
            vault_addr=self.vault_addr.strip(),
            secret_path=secret_path,
            service_path=service_path,
            creds_mount=creds_mount,
            log_level=log_level,
            log_format=log_format,
        )

    @property
    def backup_path(self) -> Path:
        return Path(self.backup_dir)

    @property
    def tls_verify(self) -> Union[bool, str]:
        """Value for hvac.Client(verify=...)."""
        if self.vault_skip_verify:
            return False
        return self.vault_cacert or True

    def __repr__(self) -> str:
        # keep the token out of logs and tracebacks
        shown = {f.name: getattr(self, f.name) for f in fields(self)}
        shown["vault_token"] = "***" if self.vault_token else ""
        inner = ", ".join(f"{k}={v!r}" for k, v in shown.items())
        return f"HygieneConfig({inner})"
