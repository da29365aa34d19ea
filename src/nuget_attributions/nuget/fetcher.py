"""Package metadata fetching and transitive dependency expansion.

PackageMetadataFetcher turns package identities into PackageMetadata, trying
the local NuGet package folder, the registry nuspec endpoint and finally the
package archive. TransitiveExpander walks the dependency groups of fetched
packages to add indirectly referenced packages to a project's results.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

import aiohttp

from nuget_attributions.cache import RunCache
from nuget_attributions.errors import NuspecParseError
from nuget_attributions.models import PackageIdentity, PackageMetadata, PackageReference
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.nuget.nuspec import parse_nuspec
from nuget_attributions.versions import VersionSpec

if TYPE_CHECKING:
    from nuget_attributions.classifier import LicenseClassifier

logger = logging.getLogger(__name__)

# Per-project results, keyed "name,version" in discovery order
ProjectPackages = dict[str, PackageMetadata]


class PackageMetadataFetcher:
    """Fetches package metadata, at most once per identity per run.

    Attributes:
        client: Registry client.
        run_cache: Shared in-memory caches of the run.
        classifier: Normalizes the license of each freshly fetched package.
        package_filter: Package ids to skip, compared case-insensitively.
        package_regex: Package ids matching this pattern are skipped.
        package_cache_dir: Local NuGet package folder.
    """

    def __init__(
        self,
        client: NuGetClient,
        run_cache: RunCache,
        classifier: Optional["LicenseClassifier"] = None,
        package_filter: Iterable[str] = (),
        package_regex: Optional[re.Pattern] = None,
        package_cache_dir: Optional[Path] = None,
        include_transitive: bool = False,
        use_assets_json: bool = False,
        max_transitive_depth: int = 64,
    ) -> None:
        self.client = client
        self.run_cache = run_cache
        self.classifier = classifier
        self.package_filter = {name.lower() for name in package_filter}
        self.package_regex = package_regex
        self.package_cache_dir = package_cache_dir
        self.include_transitive = include_transitive
        # Assets files already list the transitive closure
        self.expander = (
            TransitiveExpander(self, max_depth=max_transitive_depth)
            if include_transitive and not use_assets_json
            else None
        )

    def is_filtered(self, name: str) -> bool:
        """Return True if the package is excluded by the package filters."""
        if name.lower() in self.package_filter:
            return True
        return self.package_regex is not None and self.package_regex.search(name) is not None

    async def fetch(self, identity: PackageIdentity) -> Optional[PackageMetadata]:
        """Fetch the metadata of a package version.

        Network and parse errors are logged and reported as None, the same
        as a filtered package. When every source fails, a placeholder with
        only the identity is returned and not cached.

        Args:
            identity: Package name and literal version.

        Returns:
            PackageMetadata, or None if the package is skipped.
        """
        if self.is_filtered(identity.name):
            logger.debug("Skipping filtered package %s", identity)
            return None

        async with self.run_cache.lock(identity):
            cached = self.run_cache.get_metadata(identity)
            if cached is not None:
                logger.debug("Metadata of %s obtained from cache", identity)
                return cached

            try:
                metadata = self._read_local(identity)
                if metadata is None:
                    metadata = await self._fetch_remote(identity)
            except (
                aiohttp.ClientError,
                asyncio.TimeoutError,
                NuspecParseError,
                UnicodeError,
            ) as e:
                logger.error("Failed to fetch metadata of %s: %s", identity, e)
                return None

            if metadata is None:
                logger.warning(
                    "No metadata found for %s, continuing with name and version only",
                    identity,
                )
                return PackageMetadata.placeholder(identity)

            if self.classifier is not None:
                await self.classifier.handle_licensing(metadata)
            self.run_cache.set_metadata(identity, metadata)
            return metadata

    def _local_nuspec_path(self, identity: PackageIdentity) -> Optional[Path]:
        if self.package_cache_dir is None:
            return None

        name, version = identity.name, identity.version
        path = self.package_cache_dir / name / version / f"{name}.nuspec"
        if path.is_file():
            return path

        # The package folder is lower-cased on case-sensitive file systems
        lower = name.lower()
        path = self.package_cache_dir / lower / version.lower() / f"{lower}.nuspec"
        if path.is_file():
            return path
        return None

    def _read_local(self, identity: PackageIdentity) -> Optional[PackageMetadata]:
        path = self._local_nuspec_path(identity)
        if path is None:
            return None

        try:
            metadata = parse_nuspec(path.read_bytes(), identity)
        except (OSError, NuspecParseError) as e:
            logger.warning("Ignoring unreadable local nuspec %s: %s", path, e)
            return None
        logger.debug("Metadata of %s read from %s", identity, path)
        return metadata

    async def _fetch_remote(self, identity: PackageIdentity) -> Optional[PackageMetadata]:
        nuspec = await self.client.get_nuspec(identity.name, identity.version)
        if nuspec is None:
            logger.debug("Falling back to the package archive of %s", identity)
            nuspec = await self.client.read_archive_entry(
                identity.name, identity.version, f"{identity.name}.nuspec"
            )
        if nuspec is None:
            return None
        return parse_nuspec(nuspec, identity)

    async def collect(
        self, project: str, references: Iterable[PackageReference]
    ) -> ProjectPackages:
        """Fetch the metadata of every package a project references.

        Version specifiers are expanded into literal versions and references
        with a blank name or version are skipped. Direct references are
        fetched concurrently; the results keep discovery order.

        Args:
            project: Project path, used for logging.
            references: Declared references of the project.

        Returns:
            Metadata keyed by ``"name,version"``.
        """
        identities: list[PackageIdentity] = []
        for reference in references:
            if not reference.name or not reference.name.strip():
                logger.debug("Skipping reference without a name in %s", project)
                continue
            for version in VersionSpec(reference.version_spec):
                identity = PackageIdentity(reference.name.strip(), version)
                if identity not in identities:
                    identities.append(identity)

        logger.info("Fetching metadata of %d packages for %s", len(identities), project)
        fetched = await asyncio.gather(*(self.fetch(identity) for identity in identities))

        results: ProjectPackages = {}
        for identity, metadata in zip(identities, fetched):
            if metadata is not None:
                results.setdefault(identity.key, metadata)

        if self.expander is not None:
            for metadata in list(results.values()):
                await self.expander.expand(project, metadata, results)

        return results

    async def get_packages(
        self, projects: Iterable[tuple[str, Iterable[PackageReference]]]
    ) -> dict[str, ProjectPackages]:
        """Collect the packages of several projects.

        Args:
            projects: Pairs of (project path, declared references).

        Returns:
            Per-project results keyed by project path.
        """
        packages: dict[str, ProjectPackages] = {}
        for project, references in projects:
            packages[project] = await self.collect(project, references)
        return packages


class TransitiveExpander:
    """Adds the dependencies of fetched packages to a project's results.

    A child already present in the project's results is not fetched again.
    Version-string variants of a cycle would escape that guard, so recursion
    also stops at a fixed depth.
    """

    def __init__(self, fetcher: PackageMetadataFetcher, max_depth: int = 64) -> None:
        self.fetcher = fetcher
        self.max_depth = max_depth

    async def expand(
        self,
        project: str,
        metadata: PackageMetadata,
        results: ProjectPackages,
        depth: int = 0,
    ) -> None:
        """Recursively add the dependencies of a package.

        Args:
            project: Project path, used for logging.
            metadata: Package whose dependency groups are walked.
            results: The project's accumulated results, updated in place.
            depth: Current recursion depth.
        """
        if depth >= self.max_depth:
            logger.warning(
                "Stopping transitive expansion of %s in %s at depth %d",
                metadata.identity,
                project,
                depth,
            )
            return

        for group in metadata.dependency_groups:
            for dependency in group.dependencies:
                for version in VersionSpec(dependency.version):
                    identity = PackageIdentity(dependency.id, version)
                    if identity.key in results:
                        continue

                    child = await self.fetcher.fetch(identity)
                    if child is None:
                        continue

                    logger.debug("Adding transitive dependency %s of %s", identity, metadata.identity)
                    results[identity.key] = child
                    await self.expand(project, child, results, depth + 1)
