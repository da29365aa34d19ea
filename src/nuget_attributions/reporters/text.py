"""Plain text reporter for the attribution notice.

Each package becomes a block with the provenance statement and download
URL, the copyright (or the authors) and the literal license text, separated
by blank lines.
"""

from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template

from nuget_attributions.errors import MissingCopyrightError, MissingLicenseTextError
from nuget_attributions.models import LibraryInfo
from nuget_attributions.reporters.base import BaseReporter


def check_complete(info: LibraryInfo) -> None:
    """Check a record carries everything the notice needs.

    Raises:
        MissingCopyrightError: If there is neither copyright nor an author.
        MissingLicenseTextError: If the license text is empty.
    """
    if not info.copyright.strip() and not info.authors:
        raise MissingCopyrightError(info.package_name)
    if not info.license_text.strip():
        raise MissingLicenseTextError(info.package_name)


class TextReporter(BaseReporter):
    """Reporter that generates the plain text attribution notice.

    Attributes:
        template: The Jinja2 template to use for rendering.
    """

    def __init__(self, template_path: Optional[Path] = None) -> None:
        """Initialize the text reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the bundled template.
        """
        if template_path:
            env = Environment(
                loader=FileSystemLoader(template_path.parent),
                autoescape=False,
            )
            self.template = env.get_template(template_path.name)
        else:
            self.template = self._load_default_template()

    def _load_default_template(self) -> Template:
        template_content = (
            files("nuget_attributions.templates")
            .joinpath("attributions.txt.j2")
            .read_text(encoding="utf-8")
        )
        env = Environment(autoescape=False)
        return env.from_string(template_content)

    def render(self, libraries: list[LibraryInfo]) -> str:
        """Render the attribution notice.

        Raises:
            MissingCopyrightError: If a record has no copyright and no authors.
            MissingLicenseTextError: If a record has no license text.
        """
        for info in libraries:
            check_complete(info)
        return self.template.render(libraries=libraries)

    @property
    def format_name(self) -> str:
        return "text"

    @property
    def default_extension(self) -> str:
        return ".txt"
