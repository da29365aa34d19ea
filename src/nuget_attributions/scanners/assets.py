"""Scanner for restored ``obj/project.assets.json`` files.

The assets file is written by ``dotnet restore`` and already contains the
full, resolved dependency closure of every target framework.
"""

import json
import logging
from pathlib import Path

from nuget_attributions.models import PackageReference
from nuget_attributions.scanners.base import BaseScanner

logger = logging.getLogger(__name__)


class ProjectAssetsScanner(BaseScanner):
    """Scanner for project.assets.json files.

    Example structure::

        {
            "targets": {
                "net8.0": {
                    "Newtonsoft.Json/13.0.3": {"type": "package", ...}
                }
            }
        }
    """

    @property
    def source_path(self) -> Path:
        return self.project_path.parent / "obj" / "project.assets.json"

    @property
    def source_name(self) -> str:
        return "project.assets.json"

    def can_handle(self) -> bool:
        if not self.source_path.is_file():
            logger.warning("Cannot find %s", self.source_path)
            return False
        return True

    def scan(self) -> list[PackageReference]:
        """Read every ``name/version`` key of every target.

        Keys that do not split into exactly two parts are logged and skipped.

        Raises:
            ValueError: If the file is not valid JSON.
        """
        logger.debug("Reading assets file %s", self.source_path)
        try:
            with open(self.source_path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.source_path}: {e}") from e

        targets = data.get("targets")
        if not isinstance(targets, dict):
            logger.warning('No "targets" property found in %s', self.source_path)
            return []

        references = []
        for target_name, dependencies in targets.items():
            logger.debug("Reading dependencies for target %s", target_name)
            for key in dependencies or {}:
                parts = key.split("/")
                if len(parts) != 2:
                    logger.warning("Unexpected package name: %s", key)
                    continue
                references.append(
                    PackageReference(
                        name=parts[0], version_spec=parts[1], source=self.source_name
                    )
                )

        return references
