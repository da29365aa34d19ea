"""Waterfall resolver running the license text resolvers in priority order.

Resolution strategy:
1. GitHub: license file at the root of the declared git repository
2. LicenseUrl: download of the declared license URL
3. Archive: license file embedded in the package archive
4. LocalFile: manually maintained override file

The first resolver that returns text wins. Later resolvers are not called,
and the record refuses a second write anyway.
"""

import logging
from typing import TYPE_CHECKING, Iterable

from nuget_attributions.cache import RunCache
from nuget_attributions.errors import AttributionError
from nuget_attributions.http import HttpClient
from nuget_attributions.models import LibraryInfo
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.resolvers.archive import ArchiveResolver
from nuget_attributions.resolvers.base import WaterfallResolverBase
from nuget_attributions.resolvers.github import GitHubResolver
from nuget_attributions.resolvers.license_url import LicenseUrlResolver
from nuget_attributions.resolvers.local_file import LocalOverrideResolver
from nuget_attributions.snapshot import RunSnapshot

if TYPE_CHECKING:
    from nuget_attributions.config import AttributionOptions

logger = logging.getLogger(__name__)


class LicenseTextResolver(WaterfallResolverBase):
    """Attaches literal license text to LibraryInfo records.

    Errors of type AttributionError (drift, missing override file) abort the
    run. Any other error raised by a resolver is logged and the next
    resolver is tried.
    """

    @classmethod
    def from_options(
        cls,
        options: "AttributionOptions",
        client: NuGetClient,
        run_cache: RunCache,
        snapshot: RunSnapshot,
    ) -> "LicenseTextResolver":
        """Build the default chain of resolvers.

        Args:
            options: Run options.
            client: Registry client shared with the metadata fetcher.
            run_cache: Shared in-memory caches of the run.
            snapshot: Results of the previous run.
        """
        return cls(
            [
                GitHubResolver(
                    github_token=options.github_token,
                    ignore_ssl_errors=options.ignore_ssl_errors,
                ),
                LicenseUrlResolver(
                    client,
                    snapshot,
                    overrides_dir=options.overrides_dir,
                    accept_html_drift=options.accept_html_drift,
                    deprecated_license_url=options.deprecated_license_url,
                    ignore_ssl_errors=options.ignore_ssl_errors,
                ),
                ArchiveResolver(client, run_cache, options.deprecated_license_url),
                LocalOverrideResolver(options.overrides_dir),
            ]
        )

    async def resolve(self, info: LibraryInfo) -> bool:
        """Resolve the license text of one package.

        Args:
            info: Package record; its license text is set on success.

        Returns:
            True if the record has license text.

        Raises:
            AttributionError: If a resolver hits a fatal condition.
        """
        if info.license_text:
            logger.debug("%s already has license text", info)
            return True

        for resolver in self.resolvers:
            try:
                result = await resolver.resolve(info)
            except AttributionError:
                raise
            except Exception as e:
                logger.warning("%s resolver failed for %s: %s", resolver.name, info, e)
                continue

            if result is None:
                logger.debug("%s resolver found no license text for %s", resolver.name, info)
                continue

            if info.set_license_text(result.text, result.source):
                logger.info("License text of %s obtained from %s", info, result.source)
                return True

        return bool(info.license_text)

    async def resolve_all(self, infos: Iterable[LibraryInfo]) -> None:
        """Resolve the license texts of several packages, one at a time."""
        for info in infos:
            await self.resolve(info)

    async def close(self) -> None:
        """Close the HTTP sessions of the resolvers."""
        for resolver in self.resolvers:
            if isinstance(resolver, HttpClient):
                await resolver.close()

    async def __aenter__(self) -> "LicenseTextResolver":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
