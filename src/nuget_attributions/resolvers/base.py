"""Base interface for license text resolvers.

Resolvers produce the literal license text of a package from one source
such as the GitHub contents API, the declared license URL, the package
archive or a local override file.
"""

from abc import ABC, abstractmethod
from typing import Optional

from nuget_attributions.models import LibraryInfo, LicenseText


class BaseResolver(ABC):
    """Abstract base class for license text resolvers.

    A resolver returns the license text of a package, or None to let the
    next resolver try. Only fatal conditions are raised.
    """

    @abstractmethod
    async def resolve(self, info: LibraryInfo) -> Optional[LicenseText]:
        """Resolve the license text of a package.

        Args:
            info: Package record to resolve.

        Returns:
            License text with its provenance tag, or None if this source
            has none.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the resolver name for logging/debugging."""
        ...

    @property
    def priority(self) -> int:
        """Return resolver priority for waterfall ordering.

        Lower numbers are tried first. Default is 100.
        """
        return 100


class WaterfallResolverBase(ABC):
    """Abstract base for waterfall resolution strategy.

    Orchestrates multiple resolvers in priority order, stopping at the
    first successful resolution.
    """

    def __init__(self, resolvers: list[BaseResolver]) -> None:
        """Initialize with a list of resolvers.

        Args:
            resolvers: Resolvers to try, sorted here by priority.
        """
        self.resolvers = sorted(resolvers, key=lambda r: r.priority)

    @abstractmethod
    async def resolve(self, info: LibraryInfo) -> bool:
        """Resolve using waterfall strategy.

        Args:
            info: Package record whose license text is set on success.

        Returns:
            True if license text is set on the record.
        """
        ...
