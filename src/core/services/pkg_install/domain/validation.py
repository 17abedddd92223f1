"""
L1 Domain — Input validation (pure).

Package names, version strings, script paths, and the sanitized
request list. Everything here raises ``ValidationError`` before any
mutation happens. No subprocess, no filesystem writes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from src.core.models.package import PackageDescriptor
from src.core.services.pkg_install.errors import ValidationError

MIN_NAME_LENGTH = 1
MAX_NAME_LENGTH = 50
MAX_VERSION_LENGTH = 20

_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_VERSION_RE = re.compile(r"^[a-zA-Z0-9._-]+$")

RESERVED_NAMES: frozenset[str] = frozenset({
    "system", "root", "admin", "sudo", "apt", "dpkg", "list", "help",
    "version", "update", "check", "remove", "install", "internal",
})

# Characters never allowed in a script path
_SUSPICIOUS = ("~", "*", "?", "[", "]")


def validate_package_name(name: str, *, allow_reserved: bool = False) -> None:
    """Check the charset, length and reserved-word rules for a name.

    ``allow_reserved`` is for removal, where host package names such as
    ``sudo`` or ``apt`` are legitimate targets.
    """
    if not name:
        raise ValidationError("package name cannot be empty")
    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"package name '{name}' must be {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} characters",
            name,
        )
    if not _NAME_RE.match(name):
        raise ValidationError(
            f"package name '{name}' must contain only alphanumeric characters, "
            "hyphens, and underscores",
            name,
        )
    if not allow_reserved and name.lower() in RESERVED_NAMES:
        raise ValidationError(f"package name '{name}' is a reserved name", name)


def validate_version(pkg: PackageDescriptor, version: str) -> None:
    """Check a requested version against the package's supported list.

    An empty version means "use the default" and is always valid.
    """
    if not version:
        return
    if len(version) > MAX_VERSION_LENGTH:
        raise ValidationError(
            f"version '{version}' for {pkg.name} must be at most "
            f"{MAX_VERSION_LENGTH} characters",
            pkg.name,
        )
    if not _VERSION_RE.match(version):
        raise ValidationError(
            f"version '{version}' for {pkg.name} contains invalid characters",
            pkg.name,
        )
    if not pkg.version_support:
        raise ValidationError(
            f"package {pkg.name} does not support version selection", pkg.name,
        )
    if not pkg.supports_version(version):
        raise ValidationError(
            f"version {version} not supported for {pkg.name}. "
            f"Supported versions: {', '.join(pkg.supported_versions)}",
            pkg.name,
        )


def validate_script_path(path: str) -> PurePosixPath:
    """Validate a catalog script path and return it normalised.

    The path must be relative, stay inside its root, carry no shell
    expansion characters, and name a ``.sh`` file.
    """
    if not path:
        raise ValidationError("script path cannot be empty")
    if ".." in path:
        raise ValidationError(f"script path '{path}' contains path traversal")
    if path.startswith("/"):
        raise ValidationError(f"script path '{path}' must be relative")
    for pattern in _SUSPICIOUS:
        if pattern in path:
            raise ValidationError(
                f"script path '{path}' contains suspicious pattern '{pattern}'"
            )
    if not path.endswith(".sh"):
        raise ValidationError(f"script path '{path}' must have .sh extension")
    return PurePosixPath(path)


def resolve_under(root: Path, relative: str) -> Path:
    """Join ``relative`` under ``root`` and prove it did not escape.

    Raises:
        ValidationError: If the root is not absolute or the result
            resolves outside it.
    """
    safe = validate_script_path(relative)
    if not root.is_absolute():
        raise ValidationError(f"base directory must be absolute: {root}")

    base = root.resolve()
    final = (base / safe).resolve()
    if not final.is_relative_to(base):
        raise ValidationError(f"path traversal detected: {relative}")
    return final


def sanitize_package_list(names: Iterable[str], *, allow_reserved: bool = False) -> list[str]:
    """Trim, lowercase, validate and de-duplicate requested names.

    Order of first appearance is preserved. Blank entries are dropped.

    Raises:
        ValidationError: On an invalid name, or when nothing is left.
    """
    sanitized: list[str] = []
    seen: set[str] = set()

    for raw in names:
        name = raw.strip().lower()
        if not name:
            continue
        validate_package_name(name, allow_reserved=allow_reserved)
        if name in seen:
            continue
        seen.add(name)
        sanitized.append(name)

    if not sanitized:
        raise ValidationError("no valid packages found in request")
    return sanitized
