"""Dependency scanners for .NET project files.

This module resolves input paths into project files and extracts the
package references each project declares.
"""

import logging
from pathlib import Path

from nuget_attributions.errors import ProjectNotFoundError
from nuget_attributions.models import PackageReference
from nuget_attributions.scanners.assets import ProjectAssetsScanner
from nuget_attributions.scanners.base import PROJECT_EXTENSIONS, BaseScanner
from nuget_attributions.scanners.packages_config import PackagesConfigScanner
from nuget_attributions.scanners.project_file import PackageReferenceScanner
from nuget_attributions.scanners.projects import discover_projects

__all__ = [
    "BaseScanner",
    "PackageReferenceScanner",
    "PackagesConfigScanner",
    "ProjectAssetsScanner",
    "discover_projects",
    "get_references",
    "get_scanners",
]

logger = logging.getLogger(__name__)

# Scanners in priority order; the assets scanner is opt-in
_SCANNERS: list[type[BaseScanner]] = [
    PackageReferenceScanner,
    PackagesConfigScanner,
]


def get_scanners(project_path: Path, use_assets_json: bool = False) -> list[BaseScanner]:
    """Return the scanners to try for a project, in priority order."""
    scanner_types = list(_SCANNERS)
    if use_assets_json:
        scanner_types.insert(0, ProjectAssetsScanner)
    return [scanner_cls(project_path) for scanner_cls in scanner_types]


def get_references(project_path: Path, use_assets_json: bool = False) -> list[PackageReference]:
    """Extract the package references of a project.

    Scanners are tried in priority order and the first one that yields any
    reference wins. A path that is not a project file is resolved to the
    first project found under it.

    Args:
        project_path: Project file, or a path resolving to one.
        use_assets_json: Try obj/project.assets.json first.

    Returns:
        List of declared package references (possibly empty).

    Raises:
        ProjectNotFoundError: If no project file can be found.
    """
    if project_path.suffix.lower() not in PROJECT_EXTENSIONS:
        projects = discover_projects(project_path)
        if not projects:
            raise ProjectNotFoundError(f"No project file found for {project_path}")
        project_path = projects[0]

    if not project_path.is_file():
        raise ProjectNotFoundError(f"Project file not found: {project_path}")

    for scanner in get_scanners(project_path, use_assets_json):
        if not scanner.can_handle():
            continue
        references = scanner.scan()
        if references:
            logger.debug(
                "Found %d references in %s using %s",
                len(references),
                project_path,
                scanner.source_name,
            )
            return references

    return []
