"""
Fixtures for the package installation engine.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.core.models.settings import Settings
from src.core.services.pkg_install.data.catalog import PackageRegistry
from src.core.services.pkg_install.execution.locks import PackageLockManager
from src.core.services.pkg_install.execution.rollback import RollbackManager
from tests.pkg_install.fakes import RecordingRunner


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    root = tmp_path / "install-root"
    root.mkdir()
    return Settings(install_root=root, rollback_dir=tmp_path / "rollbacks", lock_timeout=2)


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def rollback_manager(settings: Settings, recording_runner: RecordingRunner) -> RollbackManager:
    return RollbackManager(settings.rollback_path, runner=recording_runner)


@pytest.fixture
def locks() -> PackageLockManager:
    return PackageLockManager(timeout=2)


@pytest.fixture
def catalog() -> PackageRegistry:
    """The real hard-coded catalog, fresh per test."""
    return PackageRegistry()
