"""
Package models — catalog entries and per-package operation results.

A ``PackageDescriptor`` is one immutable row of the package catalog.
``PackageResult`` is what the batch drivers collect for every requested
name; like the engine's receipts it captures failures instead of raising.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PackageDescriptor(BaseModel):
    """A catalog entry describing one installable package."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    script_path: str                             # relative to the install root
    dependencies: tuple[str, ...] = ()           # catalog names or bare commands
    detection_commands: tuple[str, ...] = ()     # all must resolve on PATH
    category: str = "general"
    version_support: bool = False
    default_version: str = ""
    supported_versions: tuple[str, ...] = ()
    apt_package_name: str = ""                   # when it differs from ``name``

    @property
    def apt_name(self) -> str:
        """Name of the package in the APT archive."""
        return self.apt_package_name or self.name

    def supports_version(self, version: str) -> bool:
        """Whether ``version`` can be requested for this package."""
        if not self.version_support:
            return False
        if not self.supported_versions:
            return True
        return version in self.supported_versions


class InstallationType(StrEnum):
    """How a package ended up on the host."""

    APT = "apt"
    MANUAL = "manual"
    USER = "user"
    VERSION_MANAGER = "version_manager"
    ALTERNATIVES = "alternatives"
    UNKNOWN = "unknown"


class InstallOutcome(StrEnum):
    """Non-failure outcomes of a single install."""

    INSTALLED = "installed"
    ALREADY_SATISFIED = "already_satisfied"


class RemovalResult(BaseModel):
    """Outcome of a safe removal, real or dry-run."""

    package_name: str
    installation_type: InstallationType = InstallationType.UNKNOWN
    success: bool = False
    warning: str = ""
    error: str = ""
    reason: str = ""              # critical_package_protected, unknown_installation_type
    dry_run: bool = False
    removed_paths: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class PackageResult(BaseModel):
    """Result of one package within a batch.

    Drivers never raise for a single package: the error text ends up
    here and the batch carries on with its siblings.
    """

    name: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    category: str = ""
    message: str = ""
    error: str | None = None
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, name: str, message: str = "", **kwargs: Any) -> PackageResult:
        """Create a success result."""
        return cls(name=name, status="ok", message=message, **kwargs)

    @classmethod
    def skip(cls, name: str, message: str = "", **kwargs: Any) -> PackageResult:
        """Create a skipped result (already satisfied, nothing to remove)."""
        return cls(name=name, status="skipped", message=message, **kwargs)

    @classmethod
    def failure(cls, name: str, error: str, **kwargs: Any) -> PackageResult:
        """Create a failure result."""
        return cls(name=name, status="failed", error=error, **kwargs)
