from importlib.metadata import PackageNotFoundError, version

from .config import HygieneConfig
from .errors import (
    BackupDirMissingError,
    BackupVerificationError,
    ConfigError,
    ConfirmationDeclined,
    EmptyPolicyError,
    ItemError,
    PolicyListError,
    PreconditionError,
    VaultHygieneError,
    VaultUnavailableError,
)
from .summary import RunSummary


def get_version() -> str:
    try:
        return version("vault-hygiene")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = [
    "BackupDirMissingError",
    "BackupVerificationError",
    "ConfigError",
    "ConfirmationDeclined",
    "EmptyPolicyError",
    "HygieneConfig",
    "ItemError",
    "PolicyListError",
    "PreconditionError",
    "RunSummary",
    "VaultHygieneError",
    "VaultUnavailableError",
    "get_version",
]
