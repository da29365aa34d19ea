"""Tests for project discovery and reference extraction."""

import json
from pathlib import Path

import pytest

from nuget_attributions.errors import ProjectNotFoundError
from nuget_attributions.scanners import discover_projects, get_references
from nuget_attributions.scanners.projects import filter_projects, parse_solution

SOLUTION = """Microsoft Visual Studio Solution File, Format Version 12.00
# Visual Studio Version 17
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "App", "src\\App\\App.csproj", "{11111111-1111-1111-1111-111111111111}"
EndProject
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "App.Tests", "tests\\App.Tests\\App.Tests.csproj", "{22222222-2222-2222-2222-222222222222}"
EndProject
Project("{2150E333-8FDC-42A3-9474-1A3956D46DE8}") = "Solution Items", "Solution Items", "{33333333-3333-3333-3333-333333333333}"
EndProject
Global
EndGlobal
"""


def _project(path: Path, *references: tuple[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    items = "\n".join(
        f'    <PackageReference Include="{name}" Version="{version}" />'
        for name, version in references
    )
    path.write_text(
        f'<Project Sdk="Microsoft.NET.Sdk">\n  <ItemGroup>\n{items}\n  </ItemGroup>\n</Project>',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def solution_dir(tmp_path: Path) -> Path:
    _project(tmp_path / "src" / "App" / "App.csproj", ("Serilog", "3.1.1"))
    _project(tmp_path / "tests" / "App.Tests" / "App.Tests.csproj", ("xunit", "2.6.1"))
    (tmp_path / "App.sln").write_text(SOLUTION, encoding="utf-8")
    return tmp_path


class TestParseSolution:
    def test_project_lines(self, solution_dir: Path):
        assert parse_solution(solution_dir / "App.sln") == [
            "src/App/App.csproj",
            "tests/App.Tests/App.Tests.csproj",
            "Solution Items",
        ]

    def test_missing(self, tmp_path: Path):
        with pytest.raises(ProjectNotFoundError):
            parse_solution(tmp_path / "Missing.sln")


class TestDiscoverProjects:
    def test_solution(self, solution_dir: Path):
        projects = discover_projects(solution_dir / "App.sln")

        assert [p.name for p in projects] == ["App.csproj", "App.Tests.csproj"]

    def test_solution_with_filter(self, solution_dir: Path):
        projects = discover_projects(solution_dir / "App.sln", ["Tests.csproj"])

        assert [p.name for p in projects] == ["App.csproj"]

    def test_directory(self, solution_dir: Path):
        _project(solution_dir / "lib" / "Lib.fsproj")

        projects = discover_projects(solution_dir)

        assert sorted(p.name for p in projects) == [
            "App.Tests.csproj",
            "App.csproj",
            "Lib.fsproj",
        ]

    def test_single_project(self, solution_dir: Path):
        project = solution_dir / "src" / "App" / "App.csproj"

        assert discover_projects(project) == [project]

    def test_json_list_deduplicates(self, solution_dir: Path):
        project = (solution_dir / "src" / "App" / "App.csproj").as_posix()
        listing = solution_dir / "projects.json"
        listing.write_text(json.dumps([project, project]), encoding="utf-8")

        assert discover_projects(listing) == [Path(project)]

    def test_missing_path(self, tmp_path: Path):
        with pytest.raises(ProjectNotFoundError, match="not found"):
            discover_projects(tmp_path / "nothing")

    def test_unsupported_input(self, tmp_path: Path):
        readme = tmp_path / "README.md"
        readme.write_text("hello", encoding="utf-8")

        with pytest.raises(ProjectNotFoundError, match="Unsupported input"):
            discover_projects(readme)


class TestFilterProjects:
    def test_backslash_filters_match(self):
        projects = [Path("src/App/App.csproj"), Path("tests/App.Tests/App.Tests.csproj")]

        assert filter_projects(projects, ["TESTS\\App.Tests"]) == [Path("src/App/App.csproj")]

    def test_no_filter(self):
        projects = [Path("a.csproj")]
        assert filter_projects(projects, []) == projects


class TestGetReferences:
    def test_project_file(self, solution_dir: Path):
        references = get_references(solution_dir / "src" / "App" / "App.csproj")

        assert [(r.name, r.version_spec) for r in references] == [("Serilog", "3.1.1")]

    def test_falls_back_to_packages_config(self, tmp_path: Path):
        project = _project(tmp_path / "Legacy.csproj")
        (tmp_path / "packages.config").write_text(
            '<packages><package id="log4net" version="2.0.15" /></packages>',
            encoding="utf-8",
        )

        references = get_references(project)

        assert [(r.name, r.source) for r in references] == [("log4net", "packages.config")]

    def test_assets_json_preferred(self, tmp_path: Path):
        project = _project(tmp_path / "App.csproj", ("Serilog", "3.1.1"))
        (tmp_path / "obj").mkdir()
        (tmp_path / "obj" / "project.assets.json").write_text(
            json.dumps({"targets": {"net8.0": {"Serilog/3.1.1": {}, "System.Memory/4.5.5": {}}}}),
            encoding="utf-8",
        )

        references = get_references(project, use_assets_json=True)

        assert [r.name for r in references] == ["Serilog", "System.Memory"]

    def test_assets_json_missing_falls_back(self, tmp_path: Path):
        project = _project(tmp_path / "App.csproj", ("Serilog", "3.1.1"))

        references = get_references(project, use_assets_json=True)

        assert [r.source for r in references] == ["csproj"]

    def test_directory_resolves_first_project(self, solution_dir: Path):
        references = get_references(solution_dir / "src")

        assert [r.name for r in references] == ["Serilog"]

    def test_missing_project(self, tmp_path: Path):
        with pytest.raises(ProjectNotFoundError):
            get_references(tmp_path / "Missing.csproj")
