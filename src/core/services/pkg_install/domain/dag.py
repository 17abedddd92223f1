"""
L1 Domain — Package dependency graph (pure).

Cycle detection, request-scoped installation order, and dependency
trees. Dependencies that are not catalog packages (bare system
commands such as ``curl``) are leaves: they never appear in the
installation order and never take part in a cycle.
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from src.core.services.pkg_install.data.catalog import RegistryView
from src.core.services.pkg_install.domain.validation import validate_package_name
from src.core.services.pkg_install.errors import CircularDependency, ValidationError


class _Mark(IntEnum):
    """Traversal colour of a node during one DFS."""

    WHITE = 0   # not visited
    GREY = 1    # on the current DFS path
    BLACK = 2   # finished


@dataclass
class DependencyNode:
    """One package in a graph. ``mark`` is only meaningful mid-traversal."""

    name: str
    dependencies: tuple[str, ...] = ()
    mark: _Mark = field(default=_Mark.WHITE, compare=False)

    def clone(self) -> DependencyNode:
        return DependencyNode(name=self.name, dependencies=self.dependencies)


class DependencyGraph:
    """Directed graph of catalog packages to their dependencies."""

    def __init__(self, edges: Mapping[str, Iterable[str]]):
        self.nodes: dict[str, DependencyNode] = {
            name: DependencyNode(name=name, dependencies=tuple(deps))
            for name, deps in edges.items()
        }

    @classmethod
    def from_registry(cls, registry: RegistryView) -> DependencyGraph:
        return cls({pkg.name: pkg.dependencies for pkg in registry})

    # ── Cycles ──

    def detect_cycles(self) -> list[str]:
        """Return the first cycle found as an ordered path, or ``[]``.

        The path starts and ends with the same name, e.g.
        ``["a", "b", "a"]``.
        """
        self._reset_marks()
        for name in sorted(self.nodes):
            if self.nodes[name].mark is _Mark.WHITE:
                cycle = self._find_cycle(self.nodes[name], [])
                if cycle:
                    return cycle
        return []

    def check_acyclic(self) -> None:
        """Raise ``CircularDependency`` if the graph has a cycle."""
        cycle = self.detect_cycles()
        if cycle:
            raise CircularDependency(cycle)

    def _find_cycle(self, node: DependencyNode, path: list[str]) -> list[str]:
        node.mark = _Mark.GREY
        path.append(node.name)

        for dep_name in node.dependencies:
            dep = self.nodes.get(dep_name)
            if dep is None:
                continue
            if dep.mark is _Mark.GREY:
                return path[path.index(dep_name):] + [dep_name]
            if dep.mark is _Mark.WHITE:
                cycle = self._find_cycle(dep, path)
                if cycle:
                    return cycle

        node.mark = _Mark.BLACK
        path.pop()
        return []

    def _reset_marks(self) -> None:
        for node in self.nodes.values():
            node.mark = _Mark.WHITE

    # ── Ordering ──

    def subgraph(self, roots: Iterable[str]) -> DependencyGraph:
        """Minimal graph of ``roots`` and every catalog package they reach.

        Nodes are cloned so traversal marks never leak between queries.
        """
        sub = DependencyGraph({})
        stack = [r for r in roots if r in self.nodes]
        while stack:
            name = stack.pop()
            if name in sub.nodes:
                continue
            node = self.nodes[name]
            sub.nodes[name] = node.clone()
            stack.extend(d for d in node.dependencies if d in self.nodes)
        return sub

    def installation_order(self, requested: Iterable[str]) -> list[str]:
        """Order the requested packages and their catalog dependencies.

        Dependencies always precede their dependents and every package
        appears exactly once. Requested roots are visited in sorted name
        order and dependencies in their declared order, so the result is
        deterministic.

        Raises:
            ValidationError: For an invalid or unknown package name.
            CircularDependency: If the requested subgraph has a cycle.
        """
        names = list(requested)
        for name in names:
            validate_package_name(name)
            if name not in self.nodes:
                raise ValidationError(f"package '{name}' not found", name)

        sub = self.subgraph(names)
        sub.check_acyclic()

        sub._reset_marks()
        order: list[str] = []
        for name in sorted(set(names)):
            sub._post_order(sub.nodes[name], order)
        return order

    def batch_prerequisites(self, names: Iterable[str]) -> dict[str, set[str]]:
        """For each batch name, the other batch names it depends on.

        Direct and transitive dependencies both count; names outside the
        batch and bare system commands are ignored.
        """
        batch = set(names)
        return {
            name: (set(self.subgraph([name]).nodes) - {name}) & batch
            for name in batch
        }

    def _post_order(self, node: DependencyNode, out: list[str]) -> None:
        if node.mark is not _Mark.WHITE:
            return
        node.mark = _Mark.GREY
        for dep_name in node.dependencies:
            dep = self.nodes.get(dep_name)
            if dep is not None:
                self._post_order(dep, out)
        node.mark = _Mark.BLACK
        out.append(node.name)


# ── Registry-level helpers ──────────────────────────────────────


def validate_registry(registry: RegistryView) -> None:
    """Cycle-check the whole catalog. Raises ``CircularDependency``."""
    DependencyGraph.from_registry(registry).check_acyclic()


def dependency_tree(registry: RegistryView, name: str) -> dict[str, Any]:
    """Nested description of a package and everything it depends on.

    Each dependency is tagged ``package`` (a catalog entry, expanded
    recursively) or ``system`` (a bare command installed through APT).

    Raises:
        ValidationError: For an invalid or unknown package name.
    """
    validate_package_name(name)
    pkg = registry.get(name)
    if pkg is None:
        raise ValidationError(f"package '{name}' not found", name)
    validate_registry(registry)
    return _tree_node(registry, name)


def _tree_node(registry: RegistryView, name: str) -> dict[str, Any]:
    pkg = registry.get(name)
    if pkg is None:
        return {"name": name, "type": "system"}
    return {
        "name": pkg.name,
        "type": "package",
        "description": pkg.description,
        "dependencies": [_tree_node(registry, dep) for dep in pkg.dependencies],
    }


def split_dependencies(
    registry: RegistryView, deps: Iterable[str],
) -> tuple[list[str], list[str]]:
    """Split dependencies into (catalog packages, bare system commands)."""
    packages: list[str] = []
    system: list[str] = []
    for dep in deps:
        (packages if dep in registry else system).append(dep)
    return packages, system
