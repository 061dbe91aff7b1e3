from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RunSummary:
    """Per-run tally; reported in the final line, never used to change the exit status."""

    dry_run: bool = False
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

    def describe(self) -> str:
        return f"{self.total} processed: {self.succeeded} ok, {self.failed} failed, {self.skipped} skipped"
