"""Command-line interface for nuget_attributions.

Provides the main entry point and subcommands for generating the license
attribution notice of .NET projects and checking license compliance.
"""

import asyncio
import logging
import time
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nuget_attributions.cache import ArchiveCache
from nuget_attributions.config import (
    DEFAULT_OUTPUT_FILE_NAME,
    DEFAULT_OVERRIDES_DIR,
    DEFAULT_SNAPSHOT_PATH,
    DEPRECATED_LICENSE_URL,
    AttributionOptions,
)
from nuget_attributions.errors import InvalidLicensesError
from nuget_attributions.models import LibraryInfo
from nuget_attributions.pipeline import AttributionPipeline

app = typer.Typer(
    name="nuget-attributions",
    help="License attribution notices and license compliance for NuGet dependencies.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("nuget_attributions")


class LogLevel(str, Enum):
    error = "error"
    warning = "warning"
    info = "info"
    debug = "debug"


_LOG_LEVELS = {
    LogLevel.error: logging.ERROR,
    LogLevel.warning: logging.WARNING,
    LogLevel.info: logging.INFO,
    LogLevel.debug: logging.DEBUG,
}


def _setup_logging(log_level: LogLevel, verbose: bool) -> None:
    """Configure logging level from the --log-level and --verbose options."""
    level = logging.DEBUG if verbose else _LOG_LEVELS[log_level]
    logger.setLevel(level)


InputOption = Annotated[
    Optional[Path],
    typer.Option(
        "--input",
        "-i",
        help="Folder, project file, solution file or JSON list of projects to scan",
    ),
]
AllowedLicenseTypesOption = Annotated[
    Optional[Path],
    typer.Option(
        "--allowed-license-types",
        help="JSON array of allowed license types; all licenses are allowed if omitted",
    ),
]
ManualInformationOption = Annotated[
    Optional[Path],
    typer.Option(
        "--manual-package-information",
        help="JSON array of manually determined package information",
    ),
]
ProjectsFilterOption = Annotated[
    Optional[Path],
    typer.Option(
        "--projects-filter",
        help="JSON array of project path fragments to skip, e.g. 'Tests.csproj'",
    ),
]
PackagesFilterOption = Annotated[
    Optional[str],
    typer.Option(
        "--packages-filter",
        help="JSON array file of packages to skip, or a regular expression between slashes",
    ),
]
LicenseUrlMappingsOption = Annotated[
    Optional[Path],
    typer.Option(
        "--license-url-mappings",
        help="JSON object of license URL to license type, replacing the defaults",
    ),
]
IncludeTransitiveOption = Annotated[
    bool,
    typer.Option(
        "--include-transitive",
        "-t",
        help="Include transitive package references",
    ),
]
UseAssetsJsonOption = Annotated[
    bool,
    typer.Option(
        "--use-assets-json",
        help="Read obj/project.assets.json first; requires --include-transitive",
    ),
]
IgnoreSslErrorsOption = Annotated[
    bool,
    typer.Option(
        "--ignore-ssl-errors",
        help="Do not verify TLS certificates",
    ),
]
PackageCacheDirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--package-cache-dir",
        help="Local NuGet package folder (default: ~/.nuget/packages)",
    ),
]
NoArchiveCacheOption = Annotated[
    bool,
    typer.Option(
        "--no-archive-cache",
        help="Do not keep downloaded package archives between runs",
    ),
]
LogLevelOption = Annotated[
    LogLevel,
    typer.Option(
        "--log-level",
        "-l",
        help="Log level of the output",
        case_sensitive=False,
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
]


def print_libraries(libraries: list[LibraryInfo]) -> None:
    """Print the summary table of the resolved packages."""
    if not libraries:
        return

    table = Table(title="References")
    for column in ("Reference", "Version", "License Type", "License URL", "Text Source"):
        table.add_column(column)
    for info in libraries:
        table.add_row(
            info.package_name or "---",
            info.package_version or "---",
            info.license_type or "---",
            info.license_url or "---",
            info.license_text_source or "---",
        )
    console.print(table)


async def _run_gen(options: AttributionOptions) -> list[LibraryInfo]:
    """Async implementation of the gen command."""
    async with AttributionPipeline(options) as pipeline:
        return await pipeline.run()


async def _run_check(options: AttributionOptions) -> list[LibraryInfo]:
    """Async implementation of the check command."""
    async with AttributionPipeline(options) as pipeline:
        return await pipeline.check()


def _print_elapsed(start: float) -> None:
    elapsed = timedelta(seconds=time.perf_counter() - start)
    console.print(f"Time elapsed: {elapsed}")


def _print_error(error: Exception, verbose: bool) -> None:
    """Print a fatal error, with its traceback when verbose."""
    if verbose:
        err_console.print_exception()
    message = f"{type(error).__name__}: {error}"
    err_console.print(f"[red]Error:[/red] {escape(message)}")


@app.command()
def gen(
    input_path: InputOption = None,
    output_directory: Annotated[
        Optional[Path],
        typer.Option(
            "--output-directory",
            "-f",
            help="Output directory (default: current directory)",
        ),
    ] = None,
    outfile: Annotated[
        str,
        typer.Option(
            "--outfile",
            help="Output file name",
        ),
    ] = DEFAULT_OUTPUT_FILE_NAME,
    allowed_license_types: AllowedLicenseTypesOption = None,
    manual_package_information: ManualInformationOption = None,
    projects_filter: ProjectsFilterOption = None,
    packages_filter: PackagesFilterOption = None,
    license_url_mappings: LicenseUrlMappingsOption = None,
    github_token: Annotated[
        Optional[str],
        typer.Option(
            "--github-token",
            envvar="GITHUB_TOKEN",
            help="GitHub API token for higher rate limits",
        ),
    ] = None,
    include_transitive: IncludeTransitiveOption = False,
    use_assets_json: UseAssetsJsonOption = False,
    accept_html_drift: Annotated[
        bool,
        typer.Option(
            "--accept-html-drift",
            help="Continue when an HTML license page changed since the last run, "
            "after the local license file has been updated",
        ),
    ] = False,
    ignore_ssl_errors: IgnoreSslErrorsOption = False,
    include_project_file: Annotated[
        bool,
        typer.Option(
            "--include-project-file",
            help="Record the projects referencing each package",
        ),
    ] = False,
    overrides_dir: Annotated[
        Path,
        typer.Option(
            "--overrides-dir",
            help="Directory of {name}_{version}.txt license files",
        ),
    ] = DEFAULT_OVERRIDES_DIR,
    snapshot_file: Annotated[
        Path,
        typer.Option(
            "--snapshot-file",
            help="JSON file holding the results of the previous run",
        ),
    ] = DEFAULT_SNAPSHOT_PATH,
    package_cache_dir: PackageCacheDirOption = None,
    no_archive_cache: NoArchiveCacheOption = False,
    exclude_name: Annotated[
        Optional[list[str]],
        typer.Option(
            "--exclude-name",
            help="Leave out packages whose name contains this text (repeatable)",
        ),
    ] = None,
    deprecated_license_url: Annotated[
        str,
        typer.Option(
            "--deprecated-license-url",
            help="Generic license URL of packages with an embedded license file",
        ),
    ] = DEPRECATED_LICENSE_URL,
    print_table: Annotated[
        bool,
        typer.Option(
            "--print/--no-print",
            help="Print the resolved packages",
        ),
    ] = True,
    log_level: LogLevelOption = LogLevel.warning,
    verbose: VerboseOption = False,
) -> None:
    """Generate the license attribution notice.

    Scans the projects, fetches package metadata, validates licenses against
    the allow-list, resolves every license text and writes the notice.
    """
    _setup_logging(log_level, verbose)
    start = time.perf_counter()
    exit_code = 0

    try:
        options = AttributionOptions.from_files(
            allowed_license_types_file=allowed_license_types,
            manual_information_file=manual_package_information,
            projects_filter_file=projects_filter,
            packages_filter=packages_filter,
            license_url_mappings_file=license_url_mappings,
            input=input_path,
            output_directory=output_directory,
            output_file_name=outfile,
            github_token=github_token,
            include_transitive=include_transitive,
            use_assets_json=use_assets_json,
            accept_html_drift=accept_html_drift,
            ignore_ssl_errors=ignore_ssl_errors,
            include_project_file=include_project_file,
            overrides_dir=overrides_dir,
            snapshot_path=snapshot_file,
            package_cache_dir=package_cache_dir,
            use_archive_cache=not no_archive_cache,
            exclude_name_substrings=exclude_name or [],
            deprecated_license_url=deprecated_license_url,
        )
        libraries = asyncio.run(_run_gen(options))
    except Exception as e:
        _print_error(e, verbose)
        exit_code = 1
    else:
        if print_table:
            print_libraries(libraries)
        console.print(f"[green]Generated:[/green] {options.output_path}")
    finally:
        _print_elapsed(start)

    raise typer.Exit(code=exit_code)


@app.command()
def check(
    input_path: InputOption = None,
    allowed_license_types: AllowedLicenseTypesOption = None,
    manual_package_information: ManualInformationOption = None,
    projects_filter: ProjectsFilterOption = None,
    packages_filter: PackagesFilterOption = None,
    license_url_mappings: LicenseUrlMappingsOption = None,
    include_transitive: IncludeTransitiveOption = False,
    use_assets_json: UseAssetsJsonOption = False,
    ignore_ssl_errors: IgnoreSslErrorsOption = False,
    package_cache_dir: PackageCacheDirOption = None,
    no_archive_cache: NoArchiveCacheOption = False,
    log_level: LogLevelOption = LogLevel.warning,
    verbose: VerboseOption = False,
) -> None:
    """Check license compliance against the allow-list.

    Scans the projects and validates the licenses of their packages without
    resolving license texts.

    Exit codes:
        0 - All licenses compliant
        1 - Violations found or error occurred
    """
    _setup_logging(log_level, verbose)
    start = time.perf_counter()

    try:
        options = AttributionOptions.from_files(
            allowed_license_types_file=allowed_license_types,
            manual_information_file=manual_package_information,
            projects_filter_file=projects_filter,
            packages_filter=packages_filter,
            license_url_mappings_file=license_url_mappings,
            input=input_path,
            include_transitive=include_transitive,
            use_assets_json=use_assets_json,
            ignore_ssl_errors=ignore_ssl_errors,
            package_cache_dir=package_cache_dir,
            use_archive_cache=not no_archive_cache,
        )
        libraries = asyncio.run(_run_check(options))
    except InvalidLicensesError as e:
        err_console.print(f"\n[red]Violations ({len(e.invalid_packages)}):[/red]")
        err_console.print(escape(str(e)))
        _print_elapsed(start)
        raise typer.Exit(code=1)
    except Exception as e:
        _print_error(e, verbose)
        _print_elapsed(start)
        raise typer.Exit(code=1)

    if not libraries:
        console.print("[green]No packages to check[/green]")
    else:
        console.print(f"[green]All {len(libraries)} packages are compliant![/green]")
    _print_elapsed(start)


@app.command()
def cache(
    action: Annotated[
        str,
        typer.Argument(help="Cache action: 'show', 'purge' or 'clear'"),
    ],
    package: Annotated[
        Optional[str],
        typer.Argument(help="Specific package to clear (optional)"),
    ] = None,
    cache_path: Annotated[
        Optional[Path],
        typer.Option(
            "--cache-path",
            help="SQLite file of the archive cache",
        ),
    ] = None,
) -> None:
    """Manage the persistent package archive cache.

    Actions:
        show  - Display cache location, entry count, and size
        purge - Delete expired entries
        clear - Clear all cached entries (or specific package)
    """
    cache_instance = ArchiveCache(cache_path)

    if action == "show":
        info = cache_instance.info()
        console.print(f"[bold]Cache Location:[/bold] {info['path']}")
        console.print(f"[bold]Entries:[/bold] {info['count']}")
        console.print(f"[bold]Size:[/bold] {info['size_bytes'] / 1024:.1f} KB")

    elif action == "purge":
        removed = cache_instance.purge_expired()
        console.print(f"[green]Removed {removed} expired entries[/green]")

    elif action == "clear":
        if package:
            cache_instance.clear(package=package)
            console.print(f"[green]Cleared cache for:[/green] {package}")
        else:
            cache_instance.clear()
            console.print("[green]Cache cleared[/green]")

    else:
        err_console.print(f"[red]Unknown action:[/red] {action}")
        err_console.print("Valid actions: show, purge, clear")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
