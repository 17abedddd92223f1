"""
L0 Data — Language version managers and the packages they own.

Paths are relative to the user's home directory. ``uninstall`` is a
format string taking the detected version.
"""

from __future__ import annotations

VERSION_MANAGERS: dict[str, dict] = {
    "nvm": {
        "home": ".nvm",
        "packages": {"node", "npm"},
        "versions_dir": ".nvm/versions/node",
        "uninstall": "nvm uninstall {version}",
    },
    "pyenv": {
        "home": ".pyenv",
        "packages": {"python"},
        "versions_dir": ".pyenv/versions",
        "uninstall": "pyenv uninstall {version}",
    },
    "sdkman": {
        "home": ".sdkman",
        "packages": {"java"},
        "versions_dir": ".sdkman/candidates/java",
        "uninstall": "sdk uninstall java {version}",
    },
}
