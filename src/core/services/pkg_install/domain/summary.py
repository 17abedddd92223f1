"""
L1 Domain — Batch summary (pure).

Aggregates per-package results into the successful / skipped / failed
lists printed at the end of every batch. Already-satisfied packages
count toward the success rate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.core.models.package import PackageResult

# Presentation order of results: successes, then skips, then failures
_STATUS_ORDER = {"ok": 0, "skipped": 1, "failed": 2}


@dataclass
class BatchSummary:
    """Result of one batch of install or remove operations."""

    operation: str = "install"                 # install, remove
    operation_id: str = ""
    results: list[PackageResult] = field(default_factory=list)
    duration_ms: int = 0

    def __post_init__(self) -> None:
        self.results = sorted(self.results, key=lambda r: (_STATUS_ORDER[r.status], r.name))

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> list[str]:
        return [r.name for r in self.results if r.ok]

    @property
    def skipped(self) -> list[str]:
        return [r.name for r in self.results if r.skipped]

    @property
    def failed(self) -> list[str]:
        return [r.name for r in self.results if r.failed]

    @property
    def errors(self) -> dict[str, str]:
        """Failed package name → error text."""
        return {r.name: r.error or "unknown error" for r in self.results if r.failed}

    @property
    def all_ok(self) -> bool:
        return not self.failed

    @property
    def success_rate(self) -> float:
        """Percentage of packages that did not fail (0-100)."""
        if not self.results:
            return 0.0
        return (self.total - len(self.failed)) / self.total * 100

    @property
    def status(self) -> str:
        if not self.failed:
            return "ok"
        if len(self.failed) == self.total:
            return "failed"
        return "partial"

    @property
    def retry_command(self) -> str:
        """Command that re-runs only the failed packages, or ``""``."""
        if not self.failed:
            return ""
        return f"run {self.operation} {' '.join(self.failed)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "operation_id": self.operation_id,
            "status": self.status,
            "total": self.total,
            "successful": self.successful,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
            "success_rate": round(self.success_rate, 1),
            "retry_command": self.retry_command,
            "duration_ms": self.duration_ms,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
