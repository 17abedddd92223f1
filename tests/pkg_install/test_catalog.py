"""
Tests for the package catalog and registry.
"""

import pytest

from src.core.services.pkg_install.data.catalog import PackageRegistry
from src.core.services.pkg_install.data.critical_packages import critical_reason
from src.core.services.pkg_install.data.removal_cleanup import (
    LEFTOVER_PATHS,
    PRE_STOP_SERVICES,
    leftover_patterns,
    pre_stop_services,
)
from src.core.services.pkg_install.domain.dag import validate_registry
from tests.pkg_install.fakes import make_pkg

EXPECTED = {"python", "node", "docker", "nginx", "postgres", "php", "java", "pm2", "essentials"}


class TestCatalogTable:
    def test_all_packages_present(self, catalog: PackageRegistry):
        assert set(catalog.view().names()) == EXPECTED

    def test_catalog_is_acyclic(self, catalog: PackageRegistry):
        validate_registry(catalog.view())

    def test_pm2_depends_on_node(self, catalog: PackageRegistry):
        assert catalog.view().get("pm2").dependencies == ("node",)

    def test_postgres_script_and_apt_name(self, catalog: PackageRegistry):
        pg = catalog.view().get("postgres")
        assert pg.script_path == "scripts/packages/postgres17.sh"
        assert pg.apt_name == "postgresql"

    def test_apt_name_defaults_to_name(self, catalog: PackageRegistry):
        assert catalog.view().get("nginx").apt_name == "nginx"

    def test_default_versions(self, catalog: PackageRegistry):
        view = catalog.view()
        assert view.default_version("python") == "3.10"
        assert view.default_version("node") == "18"
        assert view.default_version("docker") == ""

    def test_every_version_package_lists_its_default(self, catalog: PackageRegistry):
        for pkg in catalog.view():
            if pkg.version_support:
                assert pkg.default_version in pkg.supported_versions, pkg.name

    def test_docker_has_no_version_support(self, catalog: PackageRegistry):
        docker = catalog.view().get("docker")
        assert not docker.version_support
        assert not docker.supports_version("24")

    def test_supports_version(self, catalog: PackageRegistry):
        node = catalog.view().get("node")
        assert node.supports_version("20")
        assert not node.supports_version("14")


class TestRegistryView:
    def test_by_category_sorted(self, catalog: PackageRegistry):
        grouped = catalog.view().by_category()
        assert list(grouped) == sorted(grouped)
        assert [p.name for p in grouped["system"]] == ["essentials"]
        for pkgs in grouped.values():
            names = [p.name for p in pkgs]
            assert names == sorted(names)

    def test_category_of_unknown_is_empty(self, catalog: PackageRegistry):
        assert catalog.view().category_of("nope") == ""

    def test_suggest_related(self, catalog: PackageRegistry):
        view = catalog.view()
        assert view.suggest_related("node") == ["pm2", "essentials"]
        assert view.suggest_related("postgres") == ["python", "node", "java"]
        assert view.suggest_related("essentials") == []

    def test_contains_and_len(self, catalog: PackageRegistry):
        view = catalog.view()
        assert "php" in view
        assert "ruby" not in view
        assert len(view) == len(EXPECTED)


class TestRegistryMutation:
    def test_add(self):
        reg = PackageRegistry([make_pkg("alpha")])
        reg.add(make_pkg("beta", ("alpha",)))
        assert reg.view().names() == ["alpha", "beta"]

    def test_add_duplicate_rejected(self):
        reg = PackageRegistry([make_pkg("alpha")])
        with pytest.raises(ValueError):
            reg.add(make_pkg("alpha"))

    def test_update(self):
        reg = PackageRegistry([make_pkg("alpha")])
        reg.update(make_pkg("alpha", description="new"))
        assert reg.view().get("alpha").description == "new"

    def test_update_unknown(self):
        reg = PackageRegistry([])
        with pytest.raises(KeyError):
            reg.update(make_pkg("alpha"))

    def test_remove(self):
        reg = PackageRegistry([make_pkg("alpha"), make_pkg("beta")])
        reg.remove("alpha")
        assert reg.view().names() == ["beta"]

    def test_existing_view_unaffected_by_mutation(self):
        reg = PackageRegistry([make_pkg("alpha")])
        before = reg.view()
        reg.add(make_pkg("beta"))
        assert before.names() == ["alpha"]
        assert reg.view().names() == ["alpha", "beta"]

    def test_view_is_read_only(self):
        view = PackageRegistry([make_pkg("alpha")]).view()
        assert not hasattr(view, "add")
        with pytest.raises(TypeError):
            view._entries["beta"] = make_pkg("beta")

    def test_descriptor_is_frozen(self):
        pkg = make_pkg("alpha")
        with pytest.raises(Exception):
            pkg.name = "beta"


class TestCriticalPackages:
    def test_exact_match(self):
        assert critical_reason("sudo") is not None

    def test_prefix_match(self):
        assert "Python" in critical_reason("python3-apt")

    def test_not_critical(self):
        assert critical_reason("nginx") is None
        assert critical_reason("python") is None


class TestRemovalCleanupTables:
    def test_keys_are_catalog_packages(self):
        assert set(PRE_STOP_SERVICES) <= EXPECTED
        assert set(LEFTOVER_PATHS) <= EXPECTED

    def test_paths_are_absolute_or_home(self):
        for name, patterns in LEFTOVER_PATHS.items():
            for pattern in patterns:
                assert pattern.startswith(("/", "~/")), f"{name}: {pattern}"

    def test_lookups(self):
        assert pre_stop_services("docker") == ("docker", "docker.socket")
        assert pre_stop_services("java") == ()
        assert "~/.pm2" in leftover_patterns("pm2")
        assert leftover_patterns("ghost") == ()
