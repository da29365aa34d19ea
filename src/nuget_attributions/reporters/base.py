"""Base interface for output reporters.

Reporters generate the attribution notice from the resolved LibraryInfo
records.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from nuget_attributions.models import LibraryInfo


class BaseReporter(ABC):
    """Abstract base class for output reporters."""

    @abstractmethod
    def render(self, libraries: list[LibraryInfo]) -> str:
        """Render the records to formatted output.

        Args:
            libraries: Records in output order.

        Returns:
            Rendered output as a string.
        """
        ...

    def write(self, libraries: list[LibraryInfo], output_path: Path) -> None:
        """Render and write output to a file.

        The parent directory is created if needed. Nothing is written when
        rendering fails.

        Args:
            libraries: Records in output order.
            output_path: Path to write the output file.
        """
        content = self.render(libraries)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the output format name."""
        ...

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Return the default file extension for this format."""
        ...
