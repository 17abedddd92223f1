"""
Domain models — Pydantic types for the orchestrator.

All models are re-exported here for convenient access:

    from src.core.models import PackageDescriptor, PackageResult, RemovalResult
"""

from src.core.models.package import (
    InstallationType,
    InstallOutcome,
    PackageDescriptor,
    PackageResult,
    RemovalResult,
)
from src.core.models.settings import Settings

__all__ = [
    # package.py
    "InstallOutcome",
    "InstallationType",
    "PackageDescriptor",
    "PackageResult",
    "RemovalResult",
    # settings.py
    "Settings",
]
