"""License text resolvers for fetching license texts from multiple sources."""

from nuget_attributions.resolvers.archive import ArchiveResolver
from nuget_attributions.resolvers.base import BaseResolver, WaterfallResolverBase
from nuget_attributions.resolvers.github import GitHubResolver, parse_github_url
from nuget_attributions.resolvers.license_url import LicenseUrlResolver
from nuget_attributions.resolvers.local_file import LocalOverrideResolver
from nuget_attributions.resolvers.waterfall import LicenseTextResolver

__all__ = [
    "ArchiveResolver",
    "BaseResolver",
    "GitHubResolver",
    "LicenseTextResolver",
    "LicenseUrlResolver",
    "LocalOverrideResolver",
    "WaterfallResolverBase",
    "parse_github_url",
]
