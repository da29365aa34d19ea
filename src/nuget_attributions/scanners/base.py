"""Base interface for dependency scanners.

Scanners extract the NuGet packages a project declares, without restoring
or building it. Each scanner reads one kind of declaration file that belongs
to the project.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from nuget_attributions.models import PackageReference

# File extensions of the supported project types
PROJECT_EXTENSIONS = (".csproj", ".fsproj")


def local_name(tag: str) -> str:
    """Return an XML tag without its ``{namespace}`` prefix."""
    return tag.rsplit("}", 1)[-1]


class BaseScanner(ABC):
    """Abstract base class for dependency scanners.

    Attributes:
        project_path: Path to the project file whose dependencies are scanned.
    """

    def __init__(self, project_path: Path) -> None:
        """Initialize the scanner.

        Args:
            project_path: Path to a .csproj or .fsproj file.
        """
        self.project_path = project_path

    @property
    @abstractmethod
    def source_path(self) -> Path:
        """Return the file this scanner reads for the project."""
        ...

    @abstractmethod
    def scan(self) -> list[PackageReference]:
        """Scan the source and extract package references.

        Returns:
            List of PackageReference objects (possibly empty).

        Raises:
            ValueError: If the source format is invalid.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a human-readable name for this scanner's source type.

        Returns:
            Name like "project.assets.json", "packages.config", etc.
        """
        ...

    def can_handle(self) -> bool:
        """Check if the scanner's source file exists for the project."""
        return self.source_path.is_file()
