"""NuGet registry client.

Fetches nuspec manifests from the flat-container endpoint and package
archives from the package download endpoint, and reads named entries out of
the downloaded archives.
"""

import io
import logging
import zipfile
from typing import Optional

from nuget_attributions.cache import ArchiveCache
from nuget_attributions.http import HttpClient

logger = logging.getLogger(__name__)

FLAT_CONTAINER_URL = "https://api.nuget.org/v3-flatcontainer"
PACKAGE_URL = "https://www.nuget.org/api/v2/package"


class NuGetClient(HttpClient):
    """Client for the nuget.org registry.

    Non-success responses are reported as None. Network errors
    (aiohttp.ClientError, asyncio.TimeoutError) propagate to the caller,
    which decides whether they skip a package.

    Attributes:
        archive_cache: Optional persistent cache of downloaded archives.
    """

    def __init__(
        self,
        archive_cache: Optional[ArchiveCache] = None,
        ignore_ssl_errors: bool = False,
        max_concurrency: int = 8,
        flat_container_url: str = FLAT_CONTAINER_URL,
        package_url: str = PACKAGE_URL,
    ) -> None:
        super().__init__(ignore_ssl_errors=ignore_ssl_errors, max_concurrency=max_concurrency)
        self.archive_cache = archive_cache
        self.flat_container_url = flat_container_url.rstrip("/")
        self.package_url = package_url.rstrip("/")

    def nuspec_url(self, name: str, version: str) -> str:
        # The flat container only serves lower-cased ids and versions
        lower_name = name.lower()
        return f"{self.flat_container_url}/{lower_name}/{version.lower()}/{lower_name}.nuspec"

    def archive_url(self, name: str, version: str) -> str:
        return f"{self.package_url}/{name}/{version}"

    async def get_nuspec(self, name: str, version: str) -> Optional[bytes]:
        """Download the nuspec of a package version.

        Returns:
            The raw nuspec XML, or None if the registry did not return it.
        """
        url = self.nuspec_url(name, version)
        logger.debug("Fetching nuspec from %s", url)

        session = await self._get_session()
        async with self._semaphore:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.warning("%s failed due to status %d", url, response.status)
                    return None
                logger.info("Successfully received %s", url)
                return await response.read()

    async def get_archive(self, name: str, version: str) -> Optional[bytes]:
        """Download (or load from the archive cache) a package archive.

        Returns:
            The archive bytes, or None if the download failed.
        """
        if self.archive_cache is not None:
            cached = self.archive_cache.get(name, version)
            if cached is not None:
                logger.debug("Archive of %s %s obtained from cache", name, version)
                return cached

        url = self.archive_url(name, version)
        logger.debug("Attempting to download: %s", url)

        session = await self._get_session()
        async with self._semaphore:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.warning("%s failed due to status %d", url, response.status)
                    return None
                content = await response.read()

        if self.archive_cache is not None:
            self.archive_cache.set(name, version, content)
        return content

    async def read_archive_entry(self, name: str, version: str, entry: str) -> Optional[str]:
        """Read a text file out of a package archive.

        The entry is looked up by exact name first, then ignoring case and
        path separator style.

        Returns:
            The decoded file content, or None if the archive could not be
            downloaded, is not a zip file or has no such entry.
        """
        content = await self.get_archive(name, version)
        if content is None:
            return None

        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                member = _find_member(archive, entry)
                if member is None:
                    logger.debug("%s was not found in package %s %s", entry, name, version)
                    return None
                logger.debug("Attempting to read: %s", member)
                return archive.read(member).decode("utf-8-sig", errors="replace")
        except zipfile.BadZipFile as e:
            logger.warning("Archive of %s %s is not a valid zip file: %s", name, version, e)
            return None


def _find_member(archive: zipfile.ZipFile, entry: str) -> Optional[str]:
    names = archive.namelist()
    if entry in names:
        return entry

    wanted = entry.replace("\\", "/").lstrip("/").lower()
    for member in names:
        if member.lower() == wanted:
            return member
    return None
