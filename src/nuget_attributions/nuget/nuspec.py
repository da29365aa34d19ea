"""Parsing of nuspec package manifests into PackageMetadata."""

import xml.etree.ElementTree as ET
from typing import Optional, Union

from nuget_attributions.errors import NuspecParseError
from nuget_attributions.models import (
    DependencyGroup,
    LicenseDeclaration,
    PackageDependency,
    PackageIdentity,
    PackageMetadata,
    Repository,
)


def _text(parent: ET.Element, tag: str) -> Optional[str]:
    element = parent.find(f"{{*}}{tag}")
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _dependency(element: ET.Element) -> Optional[PackageDependency]:
    dependency_id = element.get("id")
    if not dependency_id:
        return None
    return PackageDependency(id=dependency_id, version=element.get("version", ""))


def _dependency_groups(metadata: ET.Element) -> list[DependencyGroup]:
    dependencies = metadata.find("{*}dependencies")
    if dependencies is None:
        return []

    groups = []
    for group in dependencies.iterfind("{*}group"):
        children = [_dependency(d) for d in group.iterfind("{*}dependency")]
        groups.append(
            DependencyGroup(
                target_framework=group.get("targetFramework"),
                dependencies=tuple(d for d in children if d is not None),
            )
        )

    # Old-style manifests list dependencies without a group
    flat = [_dependency(d) for d in dependencies.iterfind("{*}dependency")]
    flat = [d for d in flat if d is not None]
    if flat:
        groups.append(DependencyGroup(dependencies=tuple(flat)))

    return groups


def parse_nuspec(
    content: Union[str, bytes],
    identity: Optional[PackageIdentity] = None,
) -> PackageMetadata:
    """Parse a nuspec document.

    Elements are matched by local name, so documents with any of the nuspec
    schema namespaces (or none) are accepted.

    Args:
        content: The nuspec XML.
        identity: Identity to fall back on when the document omits id or
            version.

    Returns:
        Parsed PackageMetadata.

    Raises:
        NuspecParseError: If the document is not XML or has no metadata.
    """
    if isinstance(content, str):
        content = content.lstrip("\ufeff")
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise NuspecParseError(f"Invalid nuspec XML: {e}") from e

    metadata = root.find("{*}metadata")
    if metadata is None:
        raise NuspecParseError("nuspec document has no <metadata> element")

    package_id = _text(metadata, "id") or (identity.name if identity else None)
    version = _text(metadata, "version") or (identity.version if identity else None)
    if not package_id or not version:
        raise NuspecParseError("nuspec document has no id or version")

    license_declaration = None
    license_element = metadata.find("{*}license")
    if license_element is not None and license_element.text and license_element.text.strip():
        license_declaration = LicenseDeclaration(
            type=license_element.get("type", "expression"),
            text=license_element.text.strip(),
        )

    repository = None
    repository_element = metadata.find("{*}repository")
    if repository_element is not None:
        repository = Repository(
            type=repository_element.get("type", ""),
            url=repository_element.get("url", ""),
        )

    return PackageMetadata(
        id=package_id,
        version=version,
        license=license_declaration,
        license_url=_text(metadata, "licenseUrl"),
        project_url=_text(metadata, "projectUrl"),
        copyright=_text(metadata, "copyright"),
        authors=_text(metadata, "authors"),
        description=_text(metadata, "description"),
        repository=repository,
        dependency_groups=_dependency_groups(metadata),
    )
