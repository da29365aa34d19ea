"""Package archive resolver.

Packages that embed their license as a file carry the registry's generic
deprecated license URL. Their license text is read from the archive.
"""

import logging
from typing import Optional

from nuget_attributions.cache import RunCache
from nuget_attributions.models import SOURCE_LICENSE_URL_ARCHIVE, LibraryInfo, LicenseText
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.resolvers.base import BaseResolver

logger = logging.getLogger(__name__)


class ArchiveResolver(BaseResolver):
    """Reads the declared license file out of the package archive.

    Only packages whose license URL is the deprecated generic URL are tried.
    License files already read during validation are taken from the run
    cache.

    Attributes:
        client: Registry client.
        run_cache: Shared in-memory caches of the run.
        deprecated_license_url: The generic URL marking embedded licenses.
    """

    def __init__(
        self,
        client: NuGetClient,
        run_cache: RunCache,
        deprecated_license_url: str,
    ) -> None:
        self.client = client
        self.run_cache = run_cache
        self.deprecated_license_url = deprecated_license_url

    @property
    def name(self) -> str:
        return "Archive"

    @property
    def priority(self) -> int:
        return 30

    async def resolve(self, info: LibraryInfo) -> Optional[LicenseText]:
        if not info.license_url or info.license_url != self.deprecated_license_url:
            return None

        entry = info.license_file or info.license_type
        if not entry:
            logger.debug("%s declares no license file to read from its archive", info)
            return None

        identity = info.identity
        if info.license_file and self.run_cache.has_license_file(identity):
            text = self.run_cache.get_license_file(identity)
        else:
            text = await self.client.read_archive_entry(
                info.package_name, info.package_version, entry
            )
            if info.license_file:
                self.run_cache.set_license_file(identity, text)

        if not text or not text.strip():
            return None
        return LicenseText(text, SOURCE_LICENSE_URL_ARCHIVE)
