"""NuGet registry access: nuspec parsing, registry client and metadata fetching."""

from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.nuget.fetcher import PackageMetadataFetcher, TransitiveExpander
from nuget_attributions.nuget.nuspec import parse_nuspec

__all__ = [
    "NuGetClient",
    "PackageMetadataFetcher",
    "TransitiveExpander",
    "parse_nuspec",
]
