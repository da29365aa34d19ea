"""Run options and loaders for the JSON option files.

AttributionOptions collects everything a run needs. The CLI builds it with
from_files(), which reads the allow-list, manual information, filter and
mapping files, and validate() rejects inconsistent combinations before any
network activity.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from nuget_attributions.classifier import DEFAULT_LICENSE_URL_MAPPINGS
from nuget_attributions.errors import ConfigurationError
from nuget_attributions.models import LibraryInfo

logger = logging.getLogger(__name__)

DEPRECATED_LICENSE_URL = "https://aka.ms/deprecateLicenseUrl"
DEFAULT_OVERRIDES_DIR = Path("LicenseFiles") / "ManualOverrides"
DEFAULT_SNAPSHOT_PATH = Path("LastRunInfos.json")
DEFAULT_OUTPUT_FILE_NAME = "attributions.txt"

# A package filter given as /pattern/ is a regular expression
_REGEX_FILTER = re.compile(r"^/(.+)/$")


@dataclass
class AttributionOptions:
    """Options of an attribution run.

    Attributes:
        input: Solution, project, JSON project list or directory to scan.
        output_directory: Directory of the report; current directory if None.
        output_file_name: File name of the report.
        allowed_license_types: Allow-list; empty allows every license.
        manual_information: Manually curated LibraryInfo entries.
        project_filter: Substrings of project paths to skip.
        package_filter: Package ids to skip (case-insensitive).
        package_regex: Package ids matching this pattern are skipped.
        license_url_mappings: License URL to license type table.
        github_token: Optional GitHub token for the contents API.
        include_transitive: Walk dependency groups of fetched packages.
        use_assets_json: Read obj/project.assets.json first.
        accept_html_drift: Continue when an HTML license page changed.
        ignore_ssl_errors: Disable TLS certificate verification.
        include_project_file: Record contributing projects per package.
        overrides_dir: Directory of ``{name}_{version}.txt`` license files.
        snapshot_path: JSON file holding the previous run's results.
        package_cache_dir: Local NuGet package folder; ~/.nuget/packages if None.
        use_archive_cache: Keep downloaded archives in the persistent cache.
        archive_cache_path: SQLite file of the archive cache; default if None.
        exclude_name_substrings: Package names containing any of these are
            left out of the report.
        deprecated_license_url: Generic URL the registry sets for packages
            whose license is a file inside the archive.
        max_transitive_depth: Recursion ceiling of the transitive walk.
        max_concurrency: Maximum number of concurrent HTTP requests.
    """

    input: Optional[Path] = None
    output_directory: Optional[Path] = None
    output_file_name: str = DEFAULT_OUTPUT_FILE_NAME
    allowed_license_types: list[str] = field(default_factory=list)
    manual_information: list[LibraryInfo] = field(default_factory=list)
    project_filter: list[str] = field(default_factory=list)
    package_filter: list[str] = field(default_factory=list)
    package_regex: Optional[re.Pattern] = None
    license_url_mappings: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_LICENSE_URL_MAPPINGS)
    )
    github_token: Optional[str] = None
    include_transitive: bool = False
    use_assets_json: bool = False
    accept_html_drift: bool = False
    ignore_ssl_errors: bool = False
    include_project_file: bool = False
    overrides_dir: Path = DEFAULT_OVERRIDES_DIR
    snapshot_path: Path = DEFAULT_SNAPSHOT_PATH
    package_cache_dir: Optional[Path] = None
    use_archive_cache: bool = True
    archive_cache_path: Optional[Path] = None
    exclude_name_substrings: list[str] = field(default_factory=list)
    deprecated_license_url: str = DEPRECATED_LICENSE_URL
    max_transitive_depth: int = 64
    max_concurrency: int = 8

    @classmethod
    def from_files(
        cls,
        *,
        allowed_license_types_file: Optional[Path] = None,
        manual_information_file: Optional[Path] = None,
        projects_filter_file: Optional[Path] = None,
        packages_filter: Optional[str] = None,
        license_url_mappings_file: Optional[Path] = None,
        **kwargs: Any,
    ) -> "AttributionOptions":
        """Build options, loading every referenced JSON file.

        Args:
            allowed_license_types_file: JSON array of allowed license types.
            manual_information_file: JSON array of LibraryInfo objects.
            projects_filter_file: JSON array of project path substrings.
            packages_filter: JSON array file of package ids, or ``/regex/``.
            license_url_mappings_file: JSON object replacing the default
                license URL mappings.
            **kwargs: Remaining AttributionOptions fields.

        Raises:
            ConfigurationError: If a file is missing or malformed.
        """
        package_filter, package_regex = parse_package_filter(packages_filter)

        options = cls(
            allowed_license_types=read_list_file(allowed_license_types_file),
            manual_information=read_manual_information(manual_information_file),
            project_filter=[
                normalize_separators(p) for p in read_list_file(projects_filter_file)
            ],
            package_filter=package_filter,
            package_regex=package_regex,
            **kwargs,
        )
        if license_url_mappings_file is not None:
            options.license_url_mappings = read_dict_file(license_url_mappings_file)
        return options

    @property
    def output_path(self) -> Path:
        directory = self.output_directory or Path.cwd()
        return directory / (self.output_file_name or DEFAULT_OUTPUT_FILE_NAME)

    @property
    def nuget_packages_dir(self) -> Path:
        return self.package_cache_dir or Path.home() / ".nuget" / "packages"

    def validate(self) -> None:
        """Reject missing or contradictory options.

        Raises:
            ConfigurationError: If the input is missing or the options are
                logically inconsistent.
        """
        if self.input is None or not str(self.input).strip():
            raise ConfigurationError(
                "An input path (project, solution, JSON list or directory) is required"
            )
        if self.use_assets_json and not self.include_transitive:
            raise ConfigurationError(
                "--use-assets-json always includes transitive references, "
                "so --include-transitive must also be given"
            )
        if self.max_transitive_depth < 1:
            raise ConfigurationError("max_transitive_depth must be at least 1")
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")


def normalize_separators(path: str) -> str:
    """Use forward slashes regardless of the platform the path came from."""
    return path.replace("\\", "/")


def parse_package_filter(value: Optional[str]) -> tuple[list[str], Optional[re.Pattern]]:
    """Interpret the packages filter option.

    Args:
        value: None, a ``/regex/`` or the path of a JSON array file.

    Returns:
        Tuple of (exact package ids, compiled case-insensitive pattern).

    Raises:
        ConfigurationError: If the regex is invalid or the file unreadable.
    """
    if not value:
        return [], None

    match = _REGEX_FILTER.match(value)
    if match:
        try:
            return [], re.compile(match.group(1), re.IGNORECASE)
        except re.error as e:
            raise ConfigurationError(f"Cannot parse regex '{match.group(1)}': {e}") from e

    return read_list_file(Path(value)), None


def _load_json(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}")
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e


def read_list_file(path: Optional[Path]) -> list[str]:
    """Read a JSON array of strings; None yields an empty list."""
    if path is None:
        return []
    data = _load_json(path)
    if not isinstance(data, list):
        raise ConfigurationError(f"Expected a JSON array in {path}")
    return [str(item) for item in data]


def read_dict_file(path: Path) -> dict[str, str]:
    """Read a JSON object of string values."""
    data = _load_json(path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    return {str(k): str(v) for k, v in data.items()}


def read_manual_information(path: Optional[Path]) -> list[LibraryInfo]:
    """Read the manual package information file."""
    if path is None:
        return []
    data = _load_json(path)
    if not isinstance(data, list):
        raise ConfigurationError(f"Expected a JSON array in {path}")

    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise ConfigurationError(f"Expected JSON objects in {path}, got {item!r}")
        entries.append(LibraryInfo.from_dict(item))
    logger.debug("Loaded %d manual package entries from %s", len(entries), path)
    return entries
