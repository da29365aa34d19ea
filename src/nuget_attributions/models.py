"""Core data models for nuget_attributions.

This module defines the data structures that flow through the attribution
pipeline: package identities and references, nuspec metadata, and the
per-package LibraryInfo records that end up in the attribution notice.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Provenance tags recorded with resolved license text
SOURCE_GITHUB = "GitHub"
SOURCE_LICENSE_URL = "LicenseUrl"
SOURCE_LICENSE_URL_ARCHIVE = "LicenseUrl (archive)"
SOURCE_LOCAL_FILE = "Local File"


@dataclass(frozen=True)
class PackageIdentity:
    """Name and literal version of a package.

    The unique key of every cache. The version is an opaque string and is
    never compared semantically.

    Attributes:
        name: Package id (e.g., "Newtonsoft.Json").
        version: Literal version string (e.g., "13.0.3").
    """

    name: str
    version: str

    @property
    def key(self) -> str:
        """Return the ``"name,version"`` key used for per-project results."""
        return f"{self.name},{self.version}"

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"


@dataclass(frozen=True)
class PackageReference:
    """A dependency as declared by a project, before version expansion.

    Attributes:
        name: Package id.
        version_spec: Version or version-range notation (e.g., "[1.0,2.0]").
        source: Optional identifier of the declaring file type.
    """

    name: str
    version_spec: str
    source: Optional[str] = None


@dataclass(frozen=True)
class Repository:
    """Source repository descriptor from a nuspec ``<repository>`` element."""

    type: str = ""
    url: str = ""


@dataclass(frozen=True)
class PackageDependency:
    """A child dependency declared in a nuspec dependency group."""

    id: str
    version: str = ""


@dataclass(frozen=True)
class DependencyGroup:
    """A nuspec dependency group, optionally bound to a target framework."""

    target_framework: Optional[str] = None
    dependencies: tuple[PackageDependency, ...] = ()


@dataclass
class LicenseDeclaration:
    """The ``<license>`` element of a nuspec.

    Attributes:
        type: "expression" or "file".
        text: SPDX expression or the path of the license file in the archive.
    """

    type: str
    text: str

    @property
    def is_license_file(self) -> bool:
        return self.type.lower() == "file"

    @property
    def is_expression(self) -> bool:
        return self.type.lower() == "expression"


@dataclass
class PackageMetadata:
    """Package metadata read from a nuspec document.

    Created once per package identity and shared through the run cache.
    Only license normalisation mutates it after creation.

    Attributes:
        id: Package id.
        version: Package version.
        license: Declared license, or None.
        license_url: Declared license URL.
        project_url: Project home page.
        copyright: Copyright notice.
        authors: Comma-separated author list as declared.
        description: Package description.
        repository: Repository descriptor, or None.
        dependency_groups: Declared dependency groups.
        is_placeholder: True when every fetch attempt failed and only the
            identity is known.
    """

    id: str
    version: str
    license: Optional[LicenseDeclaration] = None
    license_url: Optional[str] = None
    project_url: Optional[str] = None
    copyright: Optional[str] = None
    authors: Optional[str] = None
    description: Optional[str] = None
    repository: Optional[Repository] = None
    dependency_groups: list[DependencyGroup] = field(default_factory=list)
    is_placeholder: bool = False

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.id, self.version)

    @classmethod
    def placeholder(cls, identity: PackageIdentity) -> "PackageMetadata":
        """Return a record carrying only the identity of a package."""
        return cls(id=identity.name, version=identity.version, is_placeholder=True)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HtmlLicense:
    """A license URL that served an HTML page instead of license text.

    Attributes:
        url: The URL the page was downloaded from.
        significant_text: Body text of the page with markup and line breaks
            removed, used to detect changes between runs.
    """

    url: str
    significant_text: str


@dataclass(frozen=True)
class LicenseText:
    """License text produced by a resolver, with its provenance tag."""

    text: str
    source: str


@dataclass
class LibraryInfo:
    """Per-package record rendered into the attribution notice.

    Derived from PackageMetadata merged with a manual override entry, or
    loaded directly from the manual information file. The license text is set
    at most once, through set_license_text.
    """

    package_name: str
    package_version: str
    package_url: str = ""
    copyright: str = ""
    authors: list[str] = field(default_factory=list)
    description: str = ""
    license_type: str = ""
    license_url: str = ""
    license_file: str = ""
    license_text: str = ""
    license_text_source: Optional[str] = None
    license_text_html: Optional[HtmlLicense] = None
    projects: list[str] = field(default_factory=list)
    repository: Optional[Repository] = None
    source_data: Optional[dict[str, Any]] = None

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.package_name, self.package_version)

    def __str__(self) -> str:
        return f"{self.package_name} v{self.package_version}"

    def set_license_text(self, text: Optional[str], source: str) -> bool:
        """Attach license text unless it is blank or text is already set.

        Returns:
            True if the text was attached.
        """
        if not text or not text.strip() or self.license_text:
            return False
        self.license_text = text
        self.license_text_source = source
        return True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LibraryInfo":
        """Build a LibraryInfo from JSON data.

        Accepts snake_case keys as written by the run snapshot as well as the
        PascalCase/camelCase keys used by hand-written manual information
        files. Unknown keys are ignored.
        """
        values = {_snake_case(key): value for key, value in data.items()}

        authors = values.get("authors") or []
        if isinstance(authors, str):
            authors = [a.strip() for a in authors.split(",") if a.strip()]

        projects = values.get("projects") or []
        if isinstance(projects, str):
            projects = [projects]

        repository = values.get("repository")
        if isinstance(repository, dict):
            repository = Repository(
                type=repository.get("type") or repository.get("Type") or "",
                url=repository.get("url") or repository.get("Url") or "",
            )
        else:
            repository = None

        html = values.get("license_text_html")
        if isinstance(html, dict):
            html = HtmlLicense(
                url=html.get("url", ""),
                significant_text=html.get("significant_text")
                or html.get("SignificantText")
                or "",
            )
        else:
            html = None

        return cls(
            package_name=values.get("package_name") or "",
            package_version=str(values.get("package_version") or ""),
            package_url=values.get("package_url") or "",
            copyright=values.get("copyright") or "",
            authors=list(authors),
            description=values.get("description") or "",
            license_type=values.get("license_type") or "",
            license_url=values.get("license_url") or "",
            license_file=values.get("license_file") or "",
            license_text=values.get("license_text") or "",
            license_text_source=values.get("license_text_source"),
            license_text_html=html,
            projects=list(projects),
            repository=repository,
            source_data=values.get("source_data"),
        )


@dataclass
class ValidationResult:
    """Outcome of license validation.

    Attributes:
        is_valid: True if every package uses an allowed license.
        invalid_packages: Packages that failed validation.
    """

    is_valid: bool
    invalid_packages: list[LibraryInfo] = field(default_factory=list)


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case(key: str) -> str:
    if "_" in key or key.islower():
        return key
    return _CAMEL_BOUNDARY.sub("_", key).lower()
