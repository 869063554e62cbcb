"""Tests for repository/unit discovery and guarded file access."""

import os
from pathlib import Path

import pytest

from flow_insight.config import DEFAULT_INDICATORS
from flow_insight.discovery import (
    count_projects,
    discover_repositories,
    has_test_marker,
    is_test_assembly,
    is_test_file,
    module_units,
    project_name_for,
    source_units,
)
from flow_insight.exceptions import FileAccessError, InvalidPathError, SecurityError
from flow_insight.security import read_unit_text, validate_root_directory

MARKERS = DEFAULT_INDICATORS.test_project_markers


def names(paths):
    return [p.name for p in paths]


class TestRepositories:
    def test_only_directories_with_manifests(self, repos_root):
        assert names(discover_repositories(repos_root)) == ["orders", "shipping"]

    def test_nested_project_file_is_enough(self, tmp_path, write_file):
        write_file(tmp_path / "billing" / "deep" / "down" / "Billing.csproj", "<Project />")
        write_file(tmp_path / "loose.csproj", "<Project />")
        assert names(discover_repositories(tmp_path)) == ["billing"]

    def test_empty_root(self, tmp_path):
        assert discover_repositories(tmp_path) == []


class TestSourceUnits:
    def test_build_directories_skipped(self, repos_root):
        units = source_units(repos_root / "orders")
        assert names(units) == [
            "OrderPlacedIntegrationEvent.cs",
            "OrderService.cs",
            "OrderServiceTests.cs",
        ]

    def test_exclude_tests(self, repos_root):
        units = source_units(repos_root / "orders", MARKERS, exclude_tests=True)
        assert names(units) == ["OrderPlacedIntegrationEvent.cs", "OrderService.cs"]

    def test_tests_kept_unless_excluded(self, repos_root):
        units = source_units(repos_root / "orders", MARKERS, exclude_tests=False)
        assert "OrderServiceTests.cs" in names(units)


class TestTestDetection:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Ordering.Tests", True),
            ("ordering.unittests", True),
            ("Tests.Common", True),
            ("Ordering.Specs", True),
            ("Ordering.Api", False),
            ("Contest", False),
        ],
    )
    def test_has_test_marker(self, name, expected):
        assert has_test_marker(name, MARKERS) is expected

    def test_file_in_test_project(self, tmp_path, write_file):
        write_file(tmp_path / "src" / "Checks" / "Checks.IntegrationTests.csproj", "")
        path = write_file(tmp_path / "src" / "Checks" / "Sub" / "Widget.cs", "")
        assert is_test_file(path, tmp_path, MARKERS)

    def test_file_in_test_named_directory(self, tmp_path, write_file):
        path = write_file(tmp_path / "Ordering.UnitTests" / "Widget.cs", "")
        assert is_test_file(path, tmp_path, MARKERS)

    def test_file_named_like_test(self, tmp_path, write_file):
        path = write_file(tmp_path / "src" / "OrderService.Tests.cs", "")
        assert is_test_file(path, tmp_path, MARKERS)

    def test_production_file(self, tmp_path, write_file):
        write_file(tmp_path / "src" / "Api" / "Api.csproj", "")
        path = write_file(tmp_path / "src" / "Api" / "OrderService.cs", "")
        assert not is_test_file(path, tmp_path, MARKERS)

    def test_test_assembly(self):
        assert is_test_assembly(Path("bin/Ordering.Tests.il"), MARKERS)
        assert not is_test_assembly(Path("bin/Ordering.Api.il"), MARKERS)


class TestModuleUnits:
    @pytest.fixture
    def repo(self, tmp_path, write_file):
        write_file(tmp_path / "src" / "Api" / "bin" / "Debug" / "Ordering.Api.il", ".assembly A {}")
        write_file(tmp_path / "src" / "Api" / "bin" / "Release" / "ordering.api.il", ".assembly A {}")
        write_file(tmp_path / "output" / "Ordering.Tests.il", ".assembly T {}")
        write_file(tmp_path / "src" / "Api" / "Stray.il", ".assembly S {}")
        return tmp_path

    def test_only_output_directories(self, repo):
        assert names(module_units(repo)) == ["Ordering.Tests.il", "Ordering.Api.il"]

    def test_same_name_listed_once(self, repo):
        units = module_units(repo)
        assert [p.parent.name for p in units if p.name.lower() == "ordering.api.il"] == ["Debug"]

    def test_exclude_test_assemblies(self, repo):
        assert names(module_units(repo, MARKERS, exclude_tests=True)) == ["Ordering.Api.il"]


class TestProjects:
    def test_project_name_for(self, repos_root):
        orders = repos_root / "orders"
        api = orders / "src" / "Ordering.Api"
        assert project_name_for(api / "OrderService.cs", orders) == "Ordering.Api"
        assert project_name_for(api / "obj" / "Generated.cs", orders) == "Ordering.Api"

    def test_project_name_unknown(self, repos_root):
        docs = repos_root / "docs"
        assert project_name_for(docs / "README.cs", docs) == "Unknown"

    def test_count_projects(self, repos_root):
        orders = repos_root / "orders"
        assert count_projects(orders) == 2
        assert count_projects(orders, MARKERS, exclude_tests=True) == 1


class TestRootValidation:
    def test_valid_directory(self, tmp_path):
        assert validate_root_directory(tmp_path) == tmp_path.resolve()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InvalidPathError) as excinfo:
            validate_root_directory(tmp_path / "absent")
        assert excinfo.value.reason == "Directory does not exist"

    def test_file_is_rejected(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(InvalidPathError):
            validate_root_directory(path)

    @pytest.mark.skipif(not os.path.isdir("/etc"), reason="needs /etc")
    def test_system_directory(self):
        with pytest.raises(SecurityError):
            validate_root_directory(Path("/etc"))


class TestReadUnitText:
    def test_reads_text(self, tmp_path):
        path = tmp_path / "A.cs"
        path.write_text("class A {}")
        assert read_unit_text(path) == "class A {}"

    def test_undecodable_bytes_replaced(self, tmp_path):
        path = tmp_path / "B.cs"
        path.write_bytes(b"class B \xff {}")
        assert read_unit_text(path) == "class B � {}"

    def test_oversize(self, tmp_path):
        path = tmp_path / "Big.cs"
        path.write_text("x" * 100)
        with pytest.raises(FileAccessError) as excinfo:
            read_unit_text(path, max_bytes=10)
        assert "exceeds limit" in excinfo.value.reason

    def test_missing(self, tmp_path):
        with pytest.raises(FileAccessError):
            read_unit_text(tmp_path / "Missing.cs")
