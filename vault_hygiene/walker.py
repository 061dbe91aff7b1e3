"""
Secret-tree traversal shared by the backup and delete tools.

The walk uses an explicit stack instead of recursion but visits leaves in the same order
a recursive depth-first walk would: children in listing order, each sub-directory fully
walked before its next sibling.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterator, List, Tuple

from .client import VAULT_ERRORS, VaultGateway

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9/_-]")


def sanitize_path(secret_path: str) -> str:
    """Replace every character outside [a-zA-Z0-9/_-] with '_'."""
    return _UNSAFE_CHARS.sub("_", secret_path)


def backup_file_for(backup_dir: Path, secret_path: str) -> Path:
    return Path(backup_dir) / f"{sanitize_path(secret_path)}.json"


def iter_leaf_paths(gateway: VaultGateway, root: str) -> Iterator[str]:
    if not root.endswith("/"):
        raise ValueError(f"walk root must end with '/': {root!r}")

    # (is_dir, path); pushed in reverse so pops come out in listing order
    stack: List[Tuple[bool, str]] = [(True, root)]
    while stack:
        is_dir, path = stack.pop()
        if not is_dir:
            yield path
            continue
        try:
            children = gateway.list_children(path)
        except VAULT_ERRORS as exc:
            logger.warning("Could not list secrets at path: %s (%s)", path, exc)
            continue
        if children is None:
            logger.warning("Could not list secrets at path: %s", path)
            continue
        for child in reversed(children):
            stack.append((child.endswith("/"), path + child))


def walk_secrets(gateway: VaultGateway, root: str, action: Callable[[str], object]) -> int:
    """Run `action` on every leaf under `root`; returns the number of leaves visited."""
    count = 0
    for leaf in iter_leaf_paths(gateway, root):
        action(leaf)
        count += 1
    return count
