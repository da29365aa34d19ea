"""NuGet Attributions - License attribution notices for .NET projects.

This package scans .NET projects for their NuGet dependencies, validates
their licenses against an allow-list and generates a plain text attribution
notice containing the literal license text of every package.
"""

__version__ = "0.1.0"

from nuget_attributions.models import (
    LibraryInfo,
    PackageIdentity,
    PackageMetadata,
    PackageReference,
)

__all__ = [
    "__version__",
    "LibraryInfo",
    "PackageIdentity",
    "PackageMetadata",
    "PackageReference",
]
