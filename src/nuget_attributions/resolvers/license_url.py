"""License URL resolver.

Downloads the license URL declared in the nuspec. Pages that turn out to be
HTML are not usable as license text; they are remembered on the record and
compared with the previous run to detect license pages that changed.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup

from nuget_attributions.errors import LicenseDriftError
from nuget_attributions.http import MAX_REDIRECTS, HttpClient
from nuget_attributions.models import (
    SOURCE_LICENSE_URL,
    SOURCE_LICENSE_URL_ARCHIVE,
    HtmlLicense,
    LibraryInfo,
    LicenseText,
)
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.resolvers.base import BaseResolver
from nuget_attributions.resolvers.local_file import override_path
from nuget_attributions.snapshot import RunSnapshot

logger = logging.getLogger(__name__)

# Generic pattern of a matching open and close tag
HTML_PATTERN = re.compile(r"<\s*([^ >]+)[^>]*>.*?<\s*/\s*\1\s*>", re.DOTALL)

# License URLs whose text ships inside the package archive
DOTNET_LIBRARY_LICENSE_URLS = (
    "http://go.microsoft.com/fwlink/?LinkId=329770",
    "https://dotnet.microsoft.com/en/dotnet_library_license.htm",
)
DOTNET_LIBRARY_LICENSE_FILE = "dotnet_library_license.txt"
NUGET_LICENSES_URL = "https://licenses.nuget.org"
NUGET_LICENSE_FILE = "License.txt"

# Bound on re-requests while the URL keeps changing
MAX_URL_CHANGES = MAX_REDIRECTS * 2


def is_html(text: Optional[str]) -> bool:
    """Return True if the text contains a matching pair of HTML tags."""
    return bool(text) and HTML_PATTERN.search(text) is not None


def significant_text(html: str) -> str:
    """Return the visible text of an HTML page with whitespace collapsed.

    Scripts and styles are dropped, so changes in page tooling do not count
    as changes of the license.
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return " ".join(soup.get_text(" ").split())


def correct_url(url: str) -> str:
    """Rewrite a GitHub file view URL to the URL of its raw content."""
    if url.startswith("https://github.com") and "/blob/" in url:
        return url.replace("/blob/", "/raw/")
    return url


def archive_entry_for_url(url: str) -> Optional[str]:
    """Return the archive entry holding the text of a well-known license URL."""
    if url in DOTNET_LIBRARY_LICENSE_URLS:
        return DOTNET_LIBRARY_LICENSE_FILE
    if url.startswith(NUGET_LICENSES_URL):
        return NUGET_LICENSE_FILE
    return None


class LicenseUrlResolver(HttpClient, BaseResolver):
    """Resolver that downloads the declared license URL.

    Attributes:
        client: Registry client for license files inside archives.
        snapshot: Results of the previous run.
        overrides_dir: Directory of local license override files.
        accept_html_drift: Continue with a warning when an HTML license page
            changed since the previous run.
        deprecated_license_url: Generic URL left to the archive resolver.
    """

    def __init__(
        self,
        client: NuGetClient,
        snapshot: RunSnapshot,
        overrides_dir: Path,
        accept_html_drift: bool = False,
        deprecated_license_url: str = "",
        ignore_ssl_errors: bool = False,
    ) -> None:
        super().__init__(ignore_ssl_errors=ignore_ssl_errors)
        self.client = client
        self.snapshot = snapshot
        self.overrides_dir = overrides_dir
        self.accept_html_drift = accept_html_drift
        self.deprecated_license_url = deprecated_license_url

    @property
    def name(self) -> str:
        return "LicenseUrl"

    @property
    def priority(self) -> int:
        return 20

    async def download(self, url: str) -> Optional[str]:
        """Download a URL, following redirects and URL corrections.

        The request is issued again at the redirected or corrected URL until
        the URL no longer changes.

        Returns:
            Response body, or None on a non-success status.
        """
        session = await self._get_session()
        source = url

        for _ in range(MAX_URL_CHANGES):
            async with self._semaphore:
                async with session.get(
                    source, allow_redirects=True, max_redirects=MAX_REDIRECTS
                ) as response:
                    if response.status >= 400:
                        logger.error("%s failed due to status %d", source, response.status)
                        return None

                    final_url = str(response.url)
                    if final_url != source:
                        logger.debug("Redirect detected: %s -> %s", source, final_url)
                        source = final_url
                        continue

                    corrected = correct_url(source)
                    if corrected != source:
                        logger.debug("Fixing URL: %s -> %s", source, corrected)
                        source = corrected
                        continue

                    return await response.text(errors="replace")

        logger.warning("Giving up on %s, the URL kept changing", url)
        return None

    def check_drift(self, info: LibraryInfo, html: HtmlLicense) -> None:
        """Compare an HTML license page with the previous run.

        Drift is a previous record for the same package version whose page
        text differs and whose provenance differs from the current one.

        Raises:
            LicenseDriftError: On drift, unless drift is accepted.
        """
        previous = self.snapshot.find(info.package_name, info.package_version)
        if previous is None:
            return

        previous_html = previous.license_text_html
        previous_text = previous_html.significant_text if previous_html else None
        if previous_text == html.significant_text:
            return
        if previous.license_text_source == info.license_text_source:
            return

        path = override_path(self.overrides_dir, info)
        if not self.accept_html_drift:
            raise LicenseDriftError(str(info), path)

        logger.warning(
            "The license page of %s changed since the last run, continuing because "
            "--accept-html-drift is set. Check %s is still up to date.",
            info,
            path,
        )

    async def resolve(self, info: LibraryInfo) -> Optional[LicenseText]:
        """Resolve license text from the license URL.

        Returns:
            Downloaded plain text license, or None for HTML pages, failed
            downloads and the deprecated generic URL.

        Raises:
            LicenseDriftError: If an HTML license page changed since the
                previous run and drift is not accepted.
        """
        url = info.license_url
        if not url or url == self.deprecated_license_url:
            return None

        entry = archive_entry_for_url(url)
        if entry is not None:
            text = await self.client.read_archive_entry(
                info.package_name, info.package_version, entry
            )
            if text and text.strip():
                return LicenseText(text, SOURCE_LICENSE_URL_ARCHIVE)

        text = await self.download(url)
        if not text:
            return None

        if is_html(text):
            logger.debug("License URL of %s points to an html page", info)
            info.license_text_html = HtmlLicense(url=url, significant_text=significant_text(text))
            self.check_drift(info, info.license_text_html)
            return None

        return LicenseText(text, SOURCE_LICENSE_URL)
