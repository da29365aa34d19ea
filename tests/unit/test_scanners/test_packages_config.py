"""Tests for the PackagesConfigScanner."""

from pathlib import Path

import pytest

from nuget_attributions.scanners.packages_config import PackagesConfigScanner


class TestPackagesConfigScanner:
    """Test suite for PackagesConfigScanner."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        project = tmp_path / "Legacy.csproj"
        project.write_text("<Project />", encoding="utf-8")
        return project

    def test_can_handle_requires_file(self, project: Path):
        assert not PackagesConfigScanner(project).can_handle()

        (project.parent / "packages.config").write_text("<packages />", encoding="utf-8")

        assert PackagesConfigScanner(project).can_handle()

    def test_scan(self, project: Path):
        (project.parent / "packages.config").write_text(
            """<?xml version="1.0" encoding="utf-8"?>
<packages>
  <package id="Newtonsoft.Json" version="12.0.1" targetFramework="net472" />
  <package id="log4net" version="2.0.15" targetFramework="net472" />
</packages>""",
            encoding="utf-8",
        )

        references = PackagesConfigScanner(project).scan()

        assert [(r.name, r.version_spec) for r in references] == [
            ("Newtonsoft.Json", "12.0.1"),
            ("log4net", "2.0.15"),
        ]
        assert all(r.source == "packages.config" for r in references)

    def test_scan_other_root(self, project: Path):
        (project.parent / "packages.config").write_text("<configuration />", encoding="utf-8")

        assert PackagesConfigScanner(project).scan() == []
