"""Discovery of the project files named by an input path.

The input may be a solution file, a single project file, a JSON array of
project paths or a directory that is searched recursively.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from nuget_attributions.config import normalize_separators, read_list_file
from nuget_attributions.errors import ProjectNotFoundError
from nuget_attributions.scanners.base import PROJECT_EXTENSIONS

logger = logging.getLogger(__name__)


def parse_solution(solution: Path) -> list[str]:
    """Return the project paths declared in a solution file.

    Solution files declare projects on lines like::

        Project("{FAE04EC0-...}") = "App", "src\\App\\App.csproj", "{...}"

    The second comma-separated segment, with quotes removed, is the path
    relative to the solution directory.

    Raises:
        ProjectNotFoundError: If the solution file does not exist.
    """
    if not solution.is_file():
        raise ProjectNotFoundError(f"Solution file not found: {solution}")

    projects = []
    with open(solution, "r", encoding="utf-8-sig") as f:
        for line in f:
            if not line.startswith("Project"):
                continue
            segments = line.split(",")
            if len(segments) < 2:
                continue
            projects.append(normalize_separators(segments[1].strip().strip('"')))
    return projects


def filter_projects(projects: Iterable[Path], project_filter: list[str]) -> list[Path]:
    """Drop projects whose path contains any filter entry, ignoring case.

    Substring matching also covers "ends with" entries such as
    ``Tests.csproj``.
    """
    if not project_filter:
        return list(projects)

    needles = [normalize_separators(entry).lower() for entry in project_filter]
    filtered = [
        project
        for project in projects
        if not any(needle in project.as_posix().lower() for needle in needles)
    ]
    logger.debug(
        "Filtered project files:\n%s", "\n".join(str(p) for p in filtered)
    )
    return filtered


def discover_projects(path: Path, project_filter: Optional[list[str]] = None) -> list[Path]:
    """Resolve an input path into a deduplicated list of project files.

    Args:
        path: Solution, project, JSON list or directory.
        project_filter: Substrings of project paths to exclude.

    Returns:
        Project file paths in discovery order.

    Raises:
        ProjectNotFoundError: If the path does not exist or is not a
            supported input.
    """
    if not path.exists():
        raise ProjectNotFoundError(f"Input path not found: {path}")

    suffix = path.suffix.lower()
    if path.is_dir():
        projects = sorted(
            candidate
            for extension in PROJECT_EXTENSIONS
            for candidate in path.rglob(f"*{extension}")
        )
    elif suffix == ".sln":
        projects = [
            candidate
            for candidate in (path.parent / p for p in parse_solution(path))
            if candidate.is_file() and candidate.suffix.lower() in PROJECT_EXTENSIONS
        ]
    elif suffix in PROJECT_EXTENSIONS:
        projects = [path]
    elif suffix == ".json":
        projects = [Path(normalize_separators(p)) for p in read_list_file(path)]
    else:
        raise ProjectNotFoundError(
            f"Unsupported input '{path.name}'. "
            f"Supported inputs: .sln, .csproj, .fsproj, .json or a directory"
        )

    unique = list(dict.fromkeys(projects))
    logger.debug("Discovered project files:\n%s", "\n".join(str(p) for p in unique))
    return filter_projects(unique, project_filter or [])
