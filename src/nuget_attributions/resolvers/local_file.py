"""Local override file resolver, the last stage of the chain."""

import json
import logging
from pathlib import Path
from typing import Optional

from nuget_attributions.errors import MissingLicenseOverrideError
from nuget_attributions.models import SOURCE_LOCAL_FILE, LibraryInfo, LicenseText
from nuget_attributions.resolvers.base import BaseResolver

logger = logging.getLogger(__name__)


def override_file_name(info: LibraryInfo) -> str:
    return f"{info.package_name}_{info.package_version}.txt"


def override_path(overrides_dir: Path, info: LibraryInfo) -> Path:
    """Return the override file a package's license text is read from."""
    return overrides_dir / override_file_name(info)


class LocalOverrideResolver(BaseResolver):
    """Reads license text from ``{overrides_dir}/{name}_{version}.txt``.

    Attributes:
        overrides_dir: Directory of manually maintained license files.
    """

    def __init__(self, overrides_dir: Path) -> None:
        self.overrides_dir = overrides_dir

    @property
    def name(self) -> str:
        return "LocalFile"

    @property
    def priority(self) -> int:
        return 40

    async def resolve(self, info: LibraryInfo) -> Optional[LicenseText]:
        """Read the override file of a package.

        Raises:
            MissingLicenseOverrideError: If the file does not exist. The
                error names the expected path and carries the package data.
        """
        path = override_path(self.overrides_dir, info)
        if not path.is_file():
            source = json.dumps(info.source_data, indent=2) if info.source_data else None
            raise MissingLicenseOverrideError(str(info), path, source)

        logger.debug("Reading license text of %s from %s", info, path)
        return LicenseText(path.read_text(encoding="utf-8-sig"), SOURCE_LOCAL_FILE)
