"""Exception types raised by nuget_attributions.

Per-package network and parse problems are logged and skipped where they
happen. Everything defined here is fatal for a run: configuration mistakes,
license validation failures and data-integrity failures that would make the
attribution notice legally incomplete.
"""

from pathlib import Path
from typing import Iterable, Optional


class AttributionError(Exception):
    """Base class for errors that abort an attribution run."""


class ConfigurationError(AttributionError, ValueError):
    """Inconsistent or missing options, detected before any network access."""


class ProjectNotFoundError(AttributionError, FileNotFoundError):
    """The input path does not exist or resolves to no project file."""


class NuspecParseError(ValueError):
    """A nuspec document could not be parsed.

    Not an AttributionError: the fetcher treats it as a per-package skip.
    """


class InvalidLicensesError(AttributionError):
    """One or more packages use a license outside the allow-list.

    Attributes:
        invalid_packages: Display names (``"name vversion"``) of every
            offending package.
        allowed: The configured allow-list.
    """

    def __init__(self, invalid_packages: Iterable[str], allowed: Iterable[str]):
        self.invalid_packages = list(invalid_packages)
        self.allowed = sorted(allowed)
        lines = "\n".join(f"  - {name}" for name in self.invalid_packages)
        super().__init__(
            f"Only the following license types are allowed: "
            f"{', '.join(self.allowed)}\n"
            f"Packages with invalid licenses ({len(self.invalid_packages)}):\n{lines}"
        )


class LicenseDriftError(AttributionError):
    """An HTML license page changed since the previous run."""

    def __init__(self, package: str, override_path: Path):
        self.package = package
        self.override_path = override_path
        super().__init__(
            f"The license URL of package {package} points to a web page with "
            f"html, not a file, and the page contents changed since the last "
            f"run. Please update the local license file {override_path} and "
            f"run the tool again with --accept-html-drift"
        )


class MissingLicenseOverrideError(AttributionError):
    """All sources failed and no local override file exists."""

    def __init__(self, package: str, override_path: Path, source: Optional[str] = None):
        self.package = package
        self.override_path = override_path
        message = (
            f"All other ways of getting the license text of {package} have "
            f"failed and the local license file was not found. Please find "
            f"the license text and save it into {override_path}"
        )
        if source:
            message += f"\nPackage info:\n{source}"
        super().__init__(message)


class MissingCopyrightError(AttributionError):
    """A package has neither a copyright notice nor authors."""

    def __init__(self, package: str):
        self.package = package
        super().__init__(f"Package {package} has no copyright and no authors.")


class MissingLicenseTextError(AttributionError):
    """A package reached the report without license text."""

    def __init__(self, package: str):
        self.package = package
        super().__init__(f"License text of the package {package} was not found.")
