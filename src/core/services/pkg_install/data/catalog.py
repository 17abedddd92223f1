"""
L0 Data — Package catalog.

The hard-coded table of installable packages and the registry that
serves it. The registry holds an immutable snapshot; the mutation API
(add/update/remove) swaps in a new snapshot under a lock and exists for
tests. Orchestration code receives a ``RegistryView``, which only reads.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from src.core.models.package import PackageDescriptor

# ── Catalog table ───────────────────────────────────────────────

_CATALOG: tuple[PackageDescriptor, ...] = (
    PackageDescriptor(
        name="python",
        description="Python programming language with pip",
        script_path="scripts/packages/python.sh",
        dependencies=("build-essential", "curl"),
        detection_commands=("python3", "pip3"),
        category="development",
        version_support=True,
        default_version="3.10",
        supported_versions=("3.8", "3.9", "3.10", "3.11", "3.12"),
    ),
    PackageDescriptor(
        name="node",
        description="Node.js JavaScript runtime with npm",
        script_path="scripts/packages/node.sh",
        dependencies=("curl", "build-essential"),
        detection_commands=("node", "npm"),
        category="development",
        version_support=True,
        default_version="18",
        supported_versions=("16", "18", "20", "21"),
        apt_package_name="nodejs",
    ),
    PackageDescriptor(
        name="docker",
        description="Docker container platform",
        script_path="scripts/packages/docker.sh",
        dependencies=("ca-certificates", "curl", "gnupg"),
        detection_commands=("docker",),
        category="devops",
    ),
    PackageDescriptor(
        name="nginx",
        description="High-performance web server and reverse proxy",
        script_path="scripts/packages/nginx.sh",
        dependencies=("curl", "gnupg"),
        detection_commands=("nginx",),
        category="web",
        version_support=True,
        default_version="stable",
        supported_versions=("stable", "mainline"),
    ),
    PackageDescriptor(
        name="postgres",
        description="PostgreSQL relational database server",
        script_path="scripts/packages/postgres17.sh",
        dependencies=("curl", "gnupg", "lsb-release"),
        detection_commands=("psql",),
        category="database",
        version_support=True,
        default_version="17",
        supported_versions=("15", "16", "17"),
        apt_package_name="postgresql",
    ),
    PackageDescriptor(
        name="php",
        description="PHP scripting language with FPM",
        script_path="scripts/packages/php.sh",
        dependencies=("software-properties-common",),
        detection_commands=("php",),
        category="development",
        version_support=True,
        default_version="8.3",
        supported_versions=("8.1", "8.2", "8.3"),
    ),
    PackageDescriptor(
        name="java",
        description="OpenJDK Java development kit",
        script_path="scripts/packages/java.sh",
        detection_commands=("java", "javac"),
        category="development",
        version_support=True,
        default_version="17",
        supported_versions=("11", "17", "21"),
        apt_package_name="openjdk-17-jdk",
    ),
    PackageDescriptor(
        name="pm2",
        description="Production process manager for Node.js",
        script_path="scripts/packages/pm2.sh",
        dependencies=("node",),
        detection_commands=("pm2",),
        category="devops",
        version_support=True,
        default_version="latest",
        supported_versions=("latest", "5.3.0", "5.4.0", "5.5.0"),
    ),
    PackageDescriptor(
        name="essentials",
        description="Build tools and common system utilities",
        script_path="scripts/system/essentials.sh",
        detection_commands=("gcc", "make", "redis-server"),
        category="system",
    ),
)

# Packages worth suggesting after a given install
RELATED_PACKAGES: dict[str, tuple[str, ...]] = {
    "nginx": ("php", "node"),
    "postgres": ("python", "node", "java"),
    "docker": ("node", "python"),
    "node": ("pm2",),
}

# Packages that compile native code during install
BUILD_INTENSIVE: frozenset[str] = frozenset({"python", "node", "php"})


# ── Read-only view ──────────────────────────────────────────────


class RegistryView:
    """Read-only access to one registry snapshot."""

    def __init__(self, entries: Mapping[str, PackageDescriptor]):
        self._entries = entries

    def get(self, name: str) -> PackageDescriptor | None:
        return self._entries.get(name)

    def exists(self, name: str) -> bool:
        return name in self._entries

    def names(self) -> list[str]:
        """All package names, sorted."""
        return sorted(self._entries)

    def all(self) -> list[PackageDescriptor]:
        return [self._entries[n] for n in self.names()]

    def by_category(self) -> dict[str, list[PackageDescriptor]]:
        """Packages grouped by category, both levels sorted by name."""
        grouped: dict[str, list[PackageDescriptor]] = {}
        for pkg in self.all():
            grouped.setdefault(pkg.category, []).append(pkg)
        return dict(sorted(grouped.items()))

    def category_of(self, name: str) -> str:
        pkg = self._entries.get(name)
        return pkg.category if pkg else ""

    def supported_versions(self, name: str) -> list[str]:
        pkg = self._entries.get(name)
        return list(pkg.supported_versions) if pkg else []

    def default_version(self, name: str) -> str:
        pkg = self._entries.get(name)
        return pkg.default_version if pkg else ""

    def suggest_related(self, name: str) -> list[str]:
        """Packages commonly installed alongside ``name``."""
        suggestions = [s for s in RELATED_PACKAGES.get(name, ()) if s in self._entries]
        if name in BUILD_INTENSIVE and "essentials" in self._entries:
            suggestions.append("essentials")
        return suggestions

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[PackageDescriptor]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._entries)


# ── Registry ────────────────────────────────────────────────────


class PackageRegistry:
    """Catalog holder with copy-on-write mutation.

    Readers call ``view()`` and keep working on that snapshot even if a
    test swaps the catalog underneath them.
    """

    def __init__(self, packages: Iterable[PackageDescriptor] = _CATALOG):
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, PackageDescriptor] = MappingProxyType(
            {p.name: p for p in packages}
        )

    def view(self) -> RegistryView:
        return RegistryView(self._snapshot)

    def add(self, pkg: PackageDescriptor) -> None:
        """Add a package. Raises ValueError if the name is taken."""
        with self._lock:
            if pkg.name in self._snapshot:
                raise ValueError(f"package already registered: {pkg.name}")
            self._swap({**self._snapshot, pkg.name: pkg})

    def update(self, pkg: PackageDescriptor) -> None:
        """Replace an existing package. Raises KeyError if unknown."""
        with self._lock:
            if pkg.name not in self._snapshot:
                raise KeyError(pkg.name)
            self._swap({**self._snapshot, pkg.name: pkg})

    def remove(self, name: str) -> None:
        """Drop a package. Raises KeyError if unknown."""
        with self._lock:
            if name not in self._snapshot:
                raise KeyError(name)
            entries = dict(self._snapshot)
            del entries[name]
            self._swap(entries)

    def _swap(self, entries: dict[str, PackageDescriptor]) -> None:
        self._snapshot = MappingProxyType(entries)


_default_registry: PackageRegistry | None = None


def default_registry() -> PackageRegistry:
    """The process-wide registry built from the hard-coded table."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PackageRegistry()
    return _default_registry
