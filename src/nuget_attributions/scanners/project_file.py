"""Scanner for ``<PackageReference>`` items of SDK-style project files."""

import xml.etree.ElementTree as ET
from pathlib import Path

from nuget_attributions.models import PackageReference
from nuget_attributions.scanners.base import BaseScanner, local_name


class PackageReferenceScanner(BaseScanner):
    """Scanner for PackageReference elements in .csproj/.fsproj files.

    Project files may or may not use the MSBuild XML namespace, so elements
    are matched by local name. The version is read from the ``Version``
    attribute, or from a nested ``<Version>`` element when the attribute is
    absent::

        <Project Sdk="Microsoft.NET.Sdk">
          <ItemGroup>
            <PackageReference Include="Serilog" Version="3.1.1" />
            <PackageReference Include="Dapper">
              <Version>2.1.28</Version>
            </PackageReference>
          </ItemGroup>
        </Project>
    """

    @property
    def source_path(self) -> Path:
        return self.project_path

    @property
    def source_name(self) -> str:
        return self.project_path.suffix.lstrip(".") or "project"

    def scan(self) -> list[PackageReference]:
        """Extract every PackageReference of the project.

        Raises:
            ValueError: If the project file is not well-formed XML.
        """
        try:
            root = ET.parse(self.source_path).getroot()
        except ET.ParseError as e:
            raise ValueError(f"Invalid XML in {self.source_path}: {e}") from e

        if local_name(root.tag) != "Project":
            return []

        references = []
        for element in root.iterfind("{*}ItemGroup/{*}PackageReference"):
            name = element.get("Include", "")
            version = element.get("Version")
            if version is None:
                version = next(
                    (
                        (child.text or "").strip()
                        for child in element
                        if local_name(child.tag) == "Version"
                    ),
                    "",
                )
            references.append(
                PackageReference(name=name, version_spec=version, source=self.source_name)
            )

        return references
