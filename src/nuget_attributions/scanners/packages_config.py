"""Scanner for legacy ``packages.config`` files."""

import xml.etree.ElementTree as ET
from pathlib import Path

from nuget_attributions.models import PackageReference
from nuget_attributions.scanners.base import BaseScanner


class PackagesConfigScanner(BaseScanner):
    """Scanner for the packages.config file next to a project file.

    Example::

        <packages>
          <package id="Newtonsoft.Json" version="12.0.1" targetFramework="net472" />
        </packages>
    """

    @property
    def source_path(self) -> Path:
        return self.project_path.parent / "packages.config"

    @property
    def source_name(self) -> str:
        return "packages.config"

    def scan(self) -> list[PackageReference]:
        try:
            root = ET.parse(self.source_path).getroot()
        except ET.ParseError as e:
            raise ValueError(f"Invalid XML in {self.source_path}: {e}") from e

        if root.tag != "packages":
            return []

        return [
            PackageReference(
                name=element.get("id", ""),
                version_spec=element.get("version", ""),
                source=self.source_name,
            )
            for element in root.iterfind("package")
        ]
