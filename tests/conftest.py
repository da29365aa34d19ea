"""Pytest configuration and fixtures."""

import io
import zipfile
from pathlib import Path
from typing import Callable, Optional

import pytest

from nuget_attributions.cache import RunCache
from nuget_attributions.config import AttributionOptions
from nuget_attributions.models import LibraryInfo, Repository

NUSPEC_NAMESPACE = "http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd"


def _nuspec(
    id: str = "Newtonsoft.Json",
    version: str = "13.0.3",
    license: Optional[str] = None,
    license_type: str = "expression",
    license_url: Optional[str] = None,
    project_url: Optional[str] = "https://www.newtonsoft.com/json",
    copyright: Optional[str] = "Copyright © James Newton-King 2008",
    authors: Optional[str] = "James Newton-King",
    repository: Optional[tuple[str, str]] = None,
    dependencies: tuple[tuple[str, str], ...] = (),
) -> str:
    parts = [
        '<?xml version="1.0" encoding="utf-8"?>',
        f'<package xmlns="{NUSPEC_NAMESPACE}">',
        "  <metadata>",
        f"    <id>{id}</id>",
        f"    <version>{version}</version>",
    ]
    if authors is not None:
        parts.append(f"    <authors>{authors}</authors>")
    if license is not None:
        parts.append(f'    <license type="{license_type}">{license}</license>')
    if license_url is not None:
        parts.append(f"    <licenseUrl>{license_url}</licenseUrl>")
    if project_url is not None:
        parts.append(f"    <projectUrl>{project_url}</projectUrl>")
    if copyright is not None:
        parts.append(f"    <copyright>{copyright}</copyright>")
    parts.append("    <description>A test package.</description>")
    if repository is not None:
        parts.append(f'    <repository type="{repository[0]}" url="{repository[1]}" />')
    if dependencies:
        parts.append("    <dependencies>")
        parts.append('      <group targetFramework="net6.0">')
        for dep_id, dep_version in dependencies:
            parts.append(f'        <dependency id="{dep_id}" version="{dep_version}" />')
        parts.append("      </group>")
        parts.append("    </dependencies>")
    parts.extend(["  </metadata>", "</package>"])
    return "\n".join(parts)


def _archive(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_nuspec() -> Callable[..., str]:
    """Return a factory building nuspec documents."""
    return _nuspec


@pytest.fixture
def make_archive() -> Callable[[dict[str, str]], bytes]:
    """Return a factory building package archives from a name to text map."""
    return _archive


@pytest.fixture
def run_cache() -> RunCache:
    return RunCache()


@pytest.fixture
def library_info() -> LibraryInfo:
    """Return a LibraryInfo for a package with a GitHub repository."""
    return LibraryInfo(
        package_name="Newtonsoft.Json",
        package_version="13.0.3",
        package_url="https://www.newtonsoft.com/json",
        copyright="Copyright © James Newton-King 2008",
        authors=["James Newton-King"],
        license_type="MIT",
        license_url="https://licenses.nuget.org/MIT",
        repository=Repository(type="git", url="https://github.com/JamesNK/Newtonsoft.Json.git"),
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a directory with one SDK-style project referencing one package."""
    project = tmp_path / "src" / "App"
    project.mkdir(parents=True)
    (project / "App.csproj").write_text(
        """<Project Sdk="Microsoft.NET.Sdk">
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="13.0.3" />
  </ItemGroup>
</Project>
""",
        encoding="utf-8",
    )
    return project


@pytest.fixture
def options(tmp_path: Path, project_dir: Path) -> AttributionOptions:
    """Return run options that keep every file inside tmp_path."""
    return AttributionOptions(
        input=project_dir / "App.csproj",
        output_directory=tmp_path / "out",
        overrides_dir=tmp_path / "overrides",
        snapshot_path=tmp_path / "LastRunInfos.json",
        package_cache_dir=tmp_path / "packages",
        use_archive_cache=False,
    )
