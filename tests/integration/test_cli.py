import json

import pytest
from typer.testing import CliRunner

from nuget_attributions.cache import ArchiveCache
from nuget_attributions.cli import app
from nuget_attributions.errors import InvalidLicensesError
from nuget_attributions.models import LibraryInfo

runner = CliRunner()


def _library(name: str = "Newtonsoft.Json") -> LibraryInfo:
    return LibraryInfo(
        package_name=name,
        package_version="13.0.3",
        copyright="Copyright © James Newton-King 2008",
        license_type="MIT",
        license_url="https://licenses.nuget.org/MIT",
        license_text="The MIT License",
        license_text_source="LicenseUrl (archive)",
    )


@pytest.fixture
def project_file(tmp_path):
    project = tmp_path / "App.csproj"
    project.write_text('<Project Sdk="Microsoft.NET.Sdk" />', encoding="utf-8")
    return project


@pytest.fixture
def mock_run_gen(mocker):
    """Mock the _run_gen coroutine."""
    return mocker.patch(
        "nuget_attributions.cli._run_gen",
        new_callable=mocker.AsyncMock,
        return_value=[_library()],
    )


@pytest.fixture
def mock_run_check(mocker):
    """Mock the _run_check coroutine."""
    return mocker.patch(
        "nuget_attributions.cli._run_check",
        new_callable=mocker.AsyncMock,
        return_value=[_library(), _library("Serilog")],
    )


def test_gen_command(tmp_path, project_file, mock_run_gen):
    """Test the gen command with mocked data."""
    result = runner.invoke(
        app,
        [
            "gen",
            "--input",
            str(project_file),
            "--output-directory",
            str(tmp_path / "out"),
            "--include-transitive",
            "--exclude-name",
            "Contoso",
            "--exclude-name",
            "Internal",
        ],
    )

    assert result.exit_code == 0
    assert "Generated:" in result.output
    assert "References" in result.output
    assert "Time elapsed" in result.output

    options = mock_run_gen.await_args.args[0]
    assert options.input == project_file
    assert options.output_path == tmp_path / "out" / "attributions.txt"
    assert options.include_transitive
    assert options.exclude_name_substrings == ["Contoso", "Internal"]


def test_gen_no_print(project_file, mock_run_gen):
    result = runner.invoke(app, ["gen", "-i", str(project_file), "--no-print"])

    assert result.exit_code == 0
    assert "References" not in result.output


def test_gen_loads_option_files(tmp_path, project_file, mock_run_gen):
    allowed = tmp_path / "allowed.json"
    allowed.write_text(json.dumps(["MIT"]), encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "gen",
            "-i",
            str(project_file),
            "--allowed-license-types",
            str(allowed),
            "--packages-filter",
            "/^System\\./",
        ],
    )

    assert result.exit_code == 0
    options = mock_run_gen.await_args.args[0]
    assert options.allowed_license_types == ["MIT"]
    assert options.package_regex.search("System.Memory")


def test_gen_missing_option_file(tmp_path, project_file):
    result = runner.invoke(
        app,
        ["gen", "-i", str(project_file), "--allowed-license-types", str(tmp_path / "nope.json")],
    )

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_gen_assets_json_requires_transitive(project_file):
    result = runner.invoke(app, ["gen", "-i", str(project_file), "--use-assets-json"])

    assert result.exit_code == 1
    assert "--include-transitive" in result.output


def test_gen_requires_input():
    result = runner.invoke(app, ["gen"])

    assert result.exit_code == 1
    assert "input path" in result.output


def test_gen_error_names_exception_type(project_file, mock_run_gen):
    mock_run_gen.side_effect = RuntimeError("registry unreachable")

    result = runner.invoke(app, ["gen", "-i", str(project_file)])

    assert result.exit_code == 1
    assert "RuntimeError: registry unreachable" in result.output
    assert "Traceback" not in result.output
    assert "Time elapsed" in result.output


def test_gen_verbose_error_prints_traceback(project_file, mock_run_gen):
    mock_run_gen.side_effect = RuntimeError("registry unreachable")

    result = runner.invoke(app, ["gen", "-i", str(project_file), "--verbose"])

    assert result.exit_code == 1
    assert "Traceback" in result.output
    assert "RuntimeError: registry unreachable" in result.output


def test_check_error_names_exception_type(project_file, mocker):
    mocker.patch(
        "nuget_attributions.cli._run_check",
        new_callable=mocker.AsyncMock,
        side_effect=KeyError("Newtonsoft.Json"),
    )

    result = runner.invoke(app, ["check", "-i", str(project_file)])

    assert result.exit_code == 1
    assert "KeyError: 'Newtonsoft.Json'" in result.output


def test_check_command(project_file, mock_run_check):
    result = runner.invoke(app, ["check", "-i", str(project_file)])

    assert result.exit_code == 0
    assert "All 2 packages are compliant!" in result.output


def test_check_no_packages(project_file, mocker):
    mocker.patch(
        "nuget_attributions.cli._run_check", new_callable=mocker.AsyncMock, return_value=[]
    )

    result = runner.invoke(app, ["check", "-i", str(project_file)])

    assert result.exit_code == 0
    assert "No packages to check" in result.output


def test_check_command_with_forbidden_license(project_file, mocker):
    """Test the check command with a forbidden license."""
    mocker.patch(
        "nuget_attributions.cli._run_check",
        new_callable=mocker.AsyncMock,
        side_effect=InvalidLicensesError(["Some.Gpl v1.0.0 (GPL-3.0)"], ["MIT"]),
    )

    result = runner.invoke(app, ["check", "-i", str(project_file)])

    assert result.exit_code == 1
    assert "Violations (1)" in result.output
    assert "Some.Gpl v1.0.0" in result.output


def test_cache_show(tmp_path):
    cache_path = tmp_path / "archives.db"
    ArchiveCache(cache_path).set("Serilog", "3.1.1", b"content")

    result = runner.invoke(app, ["cache", "show", "--cache-path", str(cache_path)])

    assert result.exit_code == 0
    assert "Entries:" in result.output
    assert "1" in result.output


def test_cache_clear_package(tmp_path):
    cache_path = tmp_path / "archives.db"
    archive_cache = ArchiveCache(cache_path)
    archive_cache.set("Serilog", "3.1.1", b"a")
    archive_cache.set("Dapper", "2.1.28", b"b")

    result = runner.invoke(app, ["cache", "clear", "Serilog", "--cache-path", str(cache_path)])

    assert result.exit_code == 0
    assert "Cleared cache for:" in result.output
    assert archive_cache.get("Serilog", "3.1.1") is None
    assert archive_cache.get("Dapper", "2.1.28") == b"b"


def test_cache_clear_all(tmp_path):
    cache_path = tmp_path / "archives.db"
    ArchiveCache(cache_path).set("Serilog", "3.1.1", b"a")

    result = runner.invoke(app, ["cache", "clear", "--cache-path", str(cache_path)])

    assert result.exit_code == 0
    assert "Cache cleared" in result.output
    assert ArchiveCache(cache_path).info()["count"] == 0


def test_cache_purge(tmp_path):
    result = runner.invoke(app, ["cache", "purge", "--cache-path", str(tmp_path / "a.db")])

    assert result.exit_code == 0
    assert "Removed 0 expired entries" in result.output


def test_cache_unknown_action(tmp_path):
    result = runner.invoke(app, ["cache", "explode", "--cache-path", str(tmp_path / "a.db")])

    assert result.exit_code == 1
    assert "Unknown action" in result.output
