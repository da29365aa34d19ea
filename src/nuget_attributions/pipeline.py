"""The attribution run.

AttributionPipeline wires the scanners, the metadata fetcher, the license
classifier, the license text resolvers and the reporter together.
"""

import logging
from pathlib import Path
from typing import Optional

from nuget_attributions.assembler import AttributionAssembler
from nuget_attributions.cache import ArchiveCache, RunCache
from nuget_attributions.classifier import LicenseClassifier
from nuget_attributions.config import AttributionOptions
from nuget_attributions.errors import ProjectNotFoundError
from nuget_attributions.models import LibraryInfo
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.nuget.fetcher import PackageMetadataFetcher, ProjectPackages
from nuget_attributions.reporters.base import BaseReporter
from nuget_attributions.reporters.text import TextReporter
from nuget_attributions.resolvers.waterfall import LicenseTextResolver
from nuget_attributions.scanners import discover_projects, get_references
from nuget_attributions.scanners.base import PROJECT_EXTENSIONS
from nuget_attributions.snapshot import RunSnapshot

logger = logging.getLogger(__name__)


class AttributionPipeline:
    """One attribution run over a set of projects.

    Options are validated on construction, before any network access. The
    previous run's snapshot is loaded at the same time.

    Example::

        async with AttributionPipeline(options) as pipeline:
            infos = await pipeline.run()
    """

    def __init__(
        self,
        options: AttributionOptions,
        reporter: Optional[BaseReporter] = None,
        client: Optional[NuGetClient] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            options: Run options.
            reporter: Reporter writing the notice; plain text if None.
            client: Registry client; one is created from the options if None.

        Raises:
            ConfigurationError: If the options are inconsistent.
        """
        options.validate()
        self.options = options
        self.run_cache = RunCache()

        if client is None:
            archive_cache = (
                ArchiveCache(options.archive_cache_path) if options.use_archive_cache else None
            )
            client = NuGetClient(
                archive_cache=archive_cache,
                ignore_ssl_errors=options.ignore_ssl_errors,
                max_concurrency=options.max_concurrency,
            )
        self.client = client

        self.classifier = LicenseClassifier(
            options.allowed_license_types,
            options.license_url_mappings,
            self.run_cache,
            self.client,
        )
        self.fetcher = PackageMetadataFetcher(
            self.client,
            self.run_cache,
            classifier=self.classifier,
            package_filter=options.package_filter,
            package_regex=options.package_regex,
            package_cache_dir=options.nuget_packages_dir,
            include_transitive=options.include_transitive,
            use_assets_json=options.use_assets_json,
            max_transitive_depth=options.max_transitive_depth,
        )
        self.assembler = AttributionAssembler(
            self.classifier,
            manual_information=options.manual_information,
            include_project_file=options.include_project_file,
            exclude_name_substrings=options.exclude_name_substrings,
            deprecated_license_url=options.deprecated_license_url,
        )
        self.snapshot = RunSnapshot.load(options.snapshot_path)
        self.text_resolver = LicenseTextResolver.from_options(
            options, self.client, self.run_cache, self.snapshot
        )
        self.reporter = reporter or TextReporter()

    def discover(self) -> list[Path]:
        """Return the project files to scan.

        Raises:
            ProjectNotFoundError: If a single requested project is excluded
                by the project filter or the input does not exist.
        """
        projects = discover_projects(self.options.input, self.options.project_filter)
        if not projects and self.options.input.suffix.lower() in PROJECT_EXTENSIONS:
            raise ProjectNotFoundError(f"No project to scan at {self.options.input}")
        if not projects:
            logger.warning("No project files found at %s", self.options.input)
        return projects

    async def collect(self) -> dict[str, ProjectPackages]:
        """Fetch the package metadata of every discovered project."""
        projects = []
        for project in self.discover():
            references = get_references(project, self.options.use_assets_json)
            logger.info("Found %d package references in %s", len(references), project)
            projects.append((str(project), references))
        return await self.fetcher.get_packages(projects)

    async def check(self) -> list[LibraryInfo]:
        """Collect and validate the packages, without resolving license texts.

        Raises:
            InvalidLicensesError: If a package uses a license outside the
                allow-list.
        """
        packages = await self.collect()
        infos = self.assembler.assemble(packages)
        self.classifier.ensure_valid(infos)
        return infos

    async def run(self) -> list[LibraryInfo]:
        """Run the whole pipeline and write the notice and the snapshot.

        Returns:
            The records written to the notice.

        Raises:
            AttributionError: On validation and data-integrity failures.
        """
        infos = await self.check()
        infos = self.assembler.remove_excluded(infos)

        logger.info("Resolving license texts of %d packages", len(infos))
        await self.text_resolver.resolve_all(infos)
        infos = self.assembler.rewrite_deprecated_license_urls(infos)

        output_path = self.options.output_path
        self.reporter.write(infos, output_path)
        logger.info("Attribution notice written to %s", output_path)

        RunSnapshot.save(self.options.snapshot_path, infos)
        return infos

    async def close(self) -> None:
        """Close every HTTP session of the run."""
        await self.text_resolver.close()
        await self.client.close()

    async def __aenter__(self) -> "AttributionPipeline":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
