"""License type classification and allow-list validation.

Packages declare their license either as a short SPDX expression, as a
license URL, or as a file packed inside the archive. This module turns those
signals into a license type label and checks every package against the
configured allow-list.
"""

import asyncio
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Iterable, Optional

import aiohttp
from license_expression import ExpressionError, get_spdx_licensing

from nuget_attributions.errors import InvalidLicensesError
from nuget_attributions.models import (
    LibraryInfo,
    LicenseDeclaration,
    PackageMetadata,
    ValidationResult,
)

if TYPE_CHECKING:
    from nuget_attributions.cache import RunCache
    from nuget_attributions.nuget.client import NuGetClient

logger = logging.getLogger(__name__)

SPDX = get_spdx_licensing()

DOTNET_LIBRARY_LICENSE = "MICROSOFT .NET LIBRARY"

# License URLs commonly found in nuspec files, mapped to license types
DEFAULT_LICENSE_URL_MAPPINGS = {
    "http://www.apache.org/licenses/LICENSE-2.0": "Apache-2.0",
    "https://www.apache.org/licenses/LICENSE-2.0": "Apache-2.0",
    "http://www.apache.org/licenses/LICENSE-2.0.html": "Apache-2.0",
    "https://www.apache.org/licenses/LICENSE-2.0.html": "Apache-2.0",
    "http://www.apache.org/licenses/LICENSE-2.0.txt": "Apache-2.0",
    "https://www.apache.org/licenses/LICENSE-2.0.txt": "Apache-2.0",
    "https://licenses.nuget.org/Apache-2.0": "Apache-2.0",
    "http://opensource.org/licenses/MIT": "MIT",
    "https://opensource.org/licenses/MIT": "MIT",
    "http://www.opensource.org/licenses/mit-license.php": "MIT",
    "https://opensource.org/licenses/mit-license.php": "MIT",
    "https://licenses.nuget.org/MIT": "MIT",
    "http://opensource.org/licenses/BSD-2-Clause": "BSD-2-Clause",
    "https://opensource.org/licenses/BSD-2-Clause": "BSD-2-Clause",
    "https://licenses.nuget.org/BSD-2-Clause": "BSD-2-Clause",
    "http://opensource.org/licenses/BSD-3-Clause": "BSD-3-Clause",
    "https://opensource.org/licenses/BSD-3-Clause": "BSD-3-Clause",
    "https://licenses.nuget.org/BSD-3-Clause": "BSD-3-Clause",
    "http://www.gnu.org/licenses/lgpl-3.0.html": "LGPL-3.0-only",
    "https://www.gnu.org/licenses/lgpl-3.0.html": "LGPL-3.0-only",
    "https://licenses.nuget.org/MS-PL": "MS-PL",
    "http://opensource.org/licenses/MS-PL": "MS-PL",
    "https://opensource.org/licenses/MS-PL": "MS-PL",
    "http://go.microsoft.com/fwlink/?LinkId=329770": DOTNET_LIBRARY_LICENSE,
    "https://dotnet.microsoft.com/en/dotnet_library_license.htm": DOTNET_LIBRARY_LICENSE,
    "http://go.microsoft.com/fwlink/?LinkId=529443": DOTNET_LIBRARY_LICENSE,
}


@lru_cache(maxsize=1024)
def normalize_expression(expression: str) -> str:
    """Normalize a short-form license declaration to its SPDX spelling.

    Expressions with symbols unknown to the SPDX license list are returned
    stripped but otherwise unchanged.
    """
    expression = expression.strip()
    if not expression:
        return expression
    try:
        parsed = SPDX.parse(expression, validate=True)
    except ExpressionError:
        logger.debug("Could not normalize license expression: %s", expression)
        return expression
    return str(parsed) if parsed is not None else expression


class LicenseClassifier:
    """Maps license signals to license types and validates them.

    Attributes:
        allowed_license_types: Allow-list; empty means every license is valid.
        license_url_mappings: License URL to license type table.
    """

    def __init__(
        self,
        allowed_license_types: Iterable[str],
        license_url_mappings: Optional[dict[str, str]],
        run_cache: "RunCache",
        client: Optional["NuGetClient"] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            allowed_license_types: Allowed license types.
            license_url_mappings: License URL to license type table; the
                default table if None.
            run_cache: Run cache holding license file contents.
            client: Registry client used to read license files out of
                package archives.
        """
        self.allowed_license_types = list(allowed_license_types)
        self.license_url_mappings = (
            dict(DEFAULT_LICENSE_URL_MAPPINGS)
            if license_url_mappings is None
            else license_url_mappings
        )
        self.run_cache = run_cache
        self.client = client

    def license_type(
        self, metadata: PackageMetadata, manual: Optional[LibraryInfo] = None
    ) -> str:
        """Return the license type of a package.

        A manual override wins, then an explicit short-form declaration, then
        the license URL mapping table.
        """
        if manual is not None and manual.license_type.strip():
            return manual.license_type

        if metadata.license is not None and not metadata.license.is_license_file:
            return metadata.license.text

        if metadata.license_url:
            return self.license_url_mappings.get(metadata.license_url, "")

        return ""

    async def handle_licensing(self, metadata: PackageMetadata) -> None:
        """Normalize the declared license of a freshly fetched package.

        Fills a missing license from the URL mapping table and, when an
        allow-list is configured, reads an embedded license file once into
        the run cache so validation can inspect it.
        """
        if metadata.license is None and metadata.license_url:
            mapped = self.license_url_mappings.get(metadata.license_url)
            if mapped:
                metadata.license = LicenseDeclaration(type="expression", text=mapped)
        elif metadata.license is not None and metadata.license.is_expression:
            metadata.license.text = normalize_expression(metadata.license.text)

        if (
            metadata.license is None
            or not metadata.license.is_license_file
            or not self.allowed_license_types
            or self.client is None
        ):
            return

        identity = metadata.identity
        if self.run_cache.has_license_file(identity):
            return

        try:
            text = await self.client.read_archive_entry(
                metadata.id, metadata.version, metadata.license.text
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Could not read license file of %s: %s", identity, e)
            text = None
        self.run_cache.set_license_file(identity, text)

    def is_valid(self, info: LibraryInfo) -> bool:
        """Check a single package against the allow-list.

        A license-file package matched through its file content gets its
        license type set to the matching allowed entry.
        """
        if not self.allowed_license_types:
            return True

        license_url = info.license_url or ""
        mapped = self.license_url_mappings.get(license_url) if license_url else None
        file_text = (
            self.run_cache.get_license_file(info.identity) if info.license_file else None
        )

        for allowed in self.allowed_license_types:
            if mapped is not None and mapped == allowed:
                return True
            if license_url and allowed.lower() in license_url.lower():
                return True
            if file_text and allowed.lower() in file_text.lower():
                info.license_type = allowed
                return True
            if info.license_type == allowed:
                return True

        return False

    def validate(self, libraries: Iterable[LibraryInfo]) -> ValidationResult:
        """Validate every package against the allow-list."""
        if not self.allowed_license_types:
            return ValidationResult(is_valid=True)

        logger.debug("Validating licenses against %s", self.allowed_license_types)
        invalid = [info for info in libraries if not self.is_valid(info)]
        return ValidationResult(is_valid=not invalid, invalid_packages=invalid)

    def ensure_valid(self, libraries: Iterable[LibraryInfo]) -> None:
        """Validate and raise one aggregate error for all invalid packages.

        Raises:
            InvalidLicensesError: If any package fails validation.
        """
        result = self.validate(libraries)
        if result.is_valid:
            return

        raise InvalidLicensesError(
            [
                f"{info} ({info.license_type or info.license_url or 'no license information'})"
                for info in result.invalid_packages
            ],
            self.allowed_license_types,
        )
