"""
Settings model — runtime configuration for the orchestrator.

Loaded from ``config.yml`` by ``src.core.config.loader.load_settings``.
Every field has a default so a missing file is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_INSTALL_ROOT = "~/.run"


class Settings(BaseModel):
    """Orchestrator settings."""

    install_root: Path = Field(default_factory=lambda: Path(DEFAULT_INSTALL_ROOT))
    rollback_dir: Path | None = None         # default: <install_root>/rollbacks
    audit_log: Path | None = None            # default: <install_root>/.state/audit.ndjson
    lock_timeout: float = 30.0
    script_timeout: float | None = 3600.0    # None = wait forever
    rollback_max_age_hours: float = 24.0

    @field_validator("install_root", "rollback_dir", "audit_log", mode="after")
    @classmethod
    def _expand(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @field_validator("lock_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("lock_timeout must be positive")
        return value

    @property
    def rollback_path(self) -> Path:
        return self.rollback_dir or self.install_root / "rollbacks"

    @property
    def audit_path(self) -> Path:
        return self.audit_log or self.install_root / ".state" / "audit.ndjson"
