"""
L5 Orchestration — Safe package removal.

    critical gate → detect installation type → build plan → execute

The plan lists every target (APT packages, filesystem paths, the
alternatives entry) before anything runs. A dry run returns the plan's
targets as ``removed_paths`` without executing it, so it always matches
what a real run would report. Service stops run first and are best
effort; leftover config and data paths are targets like any other.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.core.models.package import InstallationType, RemovalResult
from src.core.services.pkg_install.data.catalog import RegistryView
from src.core.services.pkg_install.data.critical_packages import critical_reason
from src.core.services.pkg_install.data.removal_cleanup import pre_stop_services
from src.core.services.pkg_install.detection.install_type import InstallTypeDetector
from src.core.services.pkg_install.domain.validation import validate_package_name
from src.core.services.pkg_install.execution.subprocess_runner import (
    NONINTERACTIVE_ENV,
    run_command,
)

logger = logging.getLogger(__name__)

REASON_CRITICAL = "critical_package_protected"
REASON_UNKNOWN = "unknown_installation_type"

Runner = Callable[..., dict[str, Any]]


@dataclass
class _Step:
    argv: list[str]
    needs_sudo: bool = False
    best_effort: bool = False


@dataclass
class RemovalPlan:
    """What a removal would do for one package."""

    name: str
    installation_type: InstallationType = InstallationType.UNKNOWN
    targets: list[str] = field(default_factory=list)
    steps: list[_Step] = field(default_factory=list)
    destructive: bool = False        # warrants an operator warning


class RemovalEngine:
    """Detects how a package was installed and removes it accordingly."""

    def __init__(
        self,
        registry: RegistryView,
        detector: InstallTypeDetector | None = None,
        runner: Runner = run_command,
    ):
        self.registry = registry
        self.detector = detector or InstallTypeDetector()
        self._run = runner

    # ── Planning ──

    def plan(self, name: str) -> RemovalPlan:
        """Try each strategy in order; the first with targets wins.

        A found installation is wrapped in the package's full cleanup:
        its services are stopped and disabled first, and its leftover
        paths are deleted afterwards (then ``apt autoremove`` for APT).
        """
        plan = self._strategy_plan(name)
        if plan.installation_type is InstallationType.UNKNOWN:
            return plan
        return self._with_cleanup(plan)

    def _strategy_plan(self, name: str) -> RemovalPlan:
        pkg = self.registry.get(name)
        apt_name = pkg.apt_name if pkg else name

        apt = self.detector.apt_packages(name, apt_name)
        if apt:
            return RemovalPlan(
                name=name,
                installation_type=InstallationType.APT,
                targets=[f"apt:{p}" for p in apt],
                steps=[_Step(["apt", "remove", "--purge", *apt, "-y"], needs_sudo=True)],
                destructive=True,
            )

        if self.detector.manual_paths(name):
            paths = self.detector.manual_paths(name, for_removal=True)
            return RemovalPlan(
                name=name,
                installation_type=InstallationType.MANUAL,
                targets=paths,
                steps=[_Step(["rm", "-rf", p], needs_sudo=True) for p in paths],
            )

        vm = self.detector.version_manager_install(name)
        if vm is not None:
            steps = [_Step(shlex.split(c), best_effort=True) for c in vm.commands]
            steps += [_Step(["rm", "-rf", p]) for p in vm.paths]
            return RemovalPlan(
                name=name,
                installation_type=InstallationType.VERSION_MANAGER,
                targets=list(vm.paths),
                steps=steps,
            )

        if self.detector.user_paths(name):
            paths = self.detector.user_paths(name, for_removal=True)
            return RemovalPlan(
                name=name,
                installation_type=InstallationType.USER,
                targets=paths,
                steps=[_Step(["rm", "-rf", p]) for p in paths],
            )

        if self.detector.has_alternatives(name):
            return RemovalPlan(
                name=name,
                installation_type=InstallationType.ALTERNATIVES,
                targets=[f"alternatives:{name}"],
                steps=[_Step(["update-alternatives", "--remove-all", name], needs_sudo=True)],
                destructive=True,
            )

        return RemovalPlan(name=name)

    def _with_cleanup(self, plan: RemovalPlan) -> RemovalPlan:
        stops: list[_Step] = []
        for unit in pre_stop_services(plan.name):
            stops.append(_Step(["systemctl", "stop", unit], needs_sudo=True, best_effort=True))
            stops.append(_Step(["systemctl", "disable", unit], needs_sudo=True, best_effort=True))

        leftovers = [p for p in self.detector.leftover_paths(plan.name) if p not in plan.targets]
        after = [_Step(["rm", "-rf", p], needs_sudo=not self._in_home(p)) for p in leftovers]
        if plan.installation_type is InstallationType.APT:
            after.append(_Step(["apt", "autoremove", "-y"], needs_sudo=True))

        plan.steps = stops + plan.steps + after
        plan.targets = plan.targets + leftovers
        return plan

    def _in_home(self, path: str) -> bool:
        return Path(path).is_relative_to(self.detector.home)

    # ── Removal ──

    def safe_remove(self, name: str, force: bool = False, dry_run: bool = False) -> RemovalResult:
        """Remove a package, honouring the critical gate and dry run.

        Never raises for host-side failures; they land in the result.
        Reserved words are accepted: host packages such as ``sudo`` are
        removal targets.

        Raises:
            ValidationError: If the name is invalid.
        """
        reason = critical_reason(name)
        if reason and not force:
            logger.warning("Refusing to remove critical package %s: %s", name, reason)
            return RemovalResult(
                package_name=name,
                success=False,
                dry_run=dry_run,
                reason=REASON_CRITICAL,
                warning=f"'{name}' is a critical system package ({reason}). Use --force to override.",
            )

        validate_package_name(name, allow_reserved=True)

        plan = self.plan(name)
        result = RemovalResult(
            package_name=name,
            installation_type=plan.installation_type,
            dry_run=dry_run,
        )

        if plan.installation_type is InstallationType.UNKNOWN:
            result.reason = REASON_UNKNOWN
            result.warning = f"No installation found for '{name}'"
            return result

        if dry_run:
            result.success = True
            result.removed_paths = list(plan.targets)
            for step in plan.steps:
                logger.info("Would execute: %s", shlex.join(step.argv))
            return result

        if plan.destructive and not force:
            logger.warning(
                "⚠️  Removing %s installation of '%s' - this may affect system stability",
                plan.installation_type.value, name,
            )

        for step in plan.steps:
            r = self._run(
                step.argv,
                needs_sudo=step.needs_sudo,
                env_overrides=NONINTERACTIVE_ENV,
                timeout=900,
            )
            if r.get("ok"):
                continue
            if step.best_effort:
                logger.warning(
                    "%s failed (continuing): %s",
                    shlex.join(step.argv), r.get("error"),
                )
                continue
            result.error = f"{shlex.join(step.argv)}: {r.get('error', 'unknown error')}"
            return result

        result.success = True
        result.removed_paths = list(plan.targets)
        logger.info("Removed %s (%s)", name, plan.installation_type.value)
        return result
