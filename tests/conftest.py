"""
Shared test fixtures and configuration.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_run_env(monkeypatch):
    """Keep the caller's RUN_* settings out of every test."""
    for name in list(os.environ):
        if name.startswith("RUN_"):
            monkeypatch.delenv(name, raising=False)
