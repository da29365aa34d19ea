"""Persistence of the previous run's results.

The snapshot is the full list of LibraryInfo written at the end of a run. The
next run only uses it to tell whether an HTML license page changed.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from nuget_attributions.models import LibraryInfo, PackageIdentity

logger = logging.getLogger(__name__)


class RunSnapshot:
    """LibraryInfo records of a previous run, indexed by name and version."""

    def __init__(self, infos: Optional[Iterable[LibraryInfo]] = None) -> None:
        self.infos = list(infos or [])
        self._index: dict[PackageIdentity, LibraryInfo] = {}
        for info in self.infos:
            self._index.setdefault(info.identity, info)

    def __len__(self) -> int:
        return len(self.infos)

    def find(self, name: str, version: str) -> Optional[LibraryInfo]:
        """Return the previous record of a package version, if any."""
        return self._index.get(PackageIdentity(name, version))

    @classmethod
    def load(cls, path: Path) -> "RunSnapshot":
        """Load a snapshot; a missing or unreadable file yields an empty one."""
        if not path.exists():
            logger.debug("No previous run information at %s", path)
            return cls()

        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable run information %s: %s", path, e)
            return cls()

        if not isinstance(data, list):
            logger.warning("Ignoring run information %s: expected a JSON array", path)
            return cls()

        infos = [LibraryInfo.from_dict(item) for item in data if isinstance(item, dict)]
        logger.debug("Loaded %d entries of previous run information", len(infos))
        return cls(infos)

    @staticmethod
    def save(path: Path, infos: Iterable[LibraryInfo]) -> None:
        """Write the records of this run for the next one."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([info.to_dict() for info in infos], f, indent=2)
        logger.debug("Run information written to %s", path)
