"""Assembly of the per-package LibraryInfo records.

Fetched metadata is merged with the manually curated package information,
deduplicated across projects and sorted by package name.
"""

import dataclasses
import logging
from typing import Iterable, Optional

from nuget_attributions.classifier import LicenseClassifier
from nuget_attributions.config import DEPRECATED_LICENSE_URL
from nuget_attributions.models import LibraryInfo, PackageIdentity, PackageMetadata
from nuget_attributions.nuget.fetcher import ProjectPackages

logger = logging.getLogger(__name__)

# Package page shown instead of the deprecated generic license URL
NUGET_LICENSE_PAGE_URL = "https://www.nuget.org/packages/{name}/{version}/License"


def _non_blank(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class AttributionAssembler:
    """Builds the LibraryInfo records of the attribution notice.

    Attributes:
        classifier: Determines the license type of each package.
        manual_information: Manually curated records, matched by name and
            version. Their fields take precedence over derived ones.
        include_project_file: Record the projects referencing each package.
        exclude_name_substrings: Packages whose name contains any of these
            (ignoring case) are left out of the notice.
        deprecated_license_url: Generic URL replaced by the package's
            license page once license texts are resolved.
    """

    def __init__(
        self,
        classifier: LicenseClassifier,
        manual_information: Iterable[LibraryInfo] = (),
        include_project_file: bool = False,
        exclude_name_substrings: Iterable[str] = (),
        deprecated_license_url: str = DEPRECATED_LICENSE_URL,
    ) -> None:
        self.classifier = classifier
        self.manual_information = list(manual_information)
        self.include_project_file = include_project_file
        self.exclude_name_substrings = [s.lower() for s in exclude_name_substrings if s]
        self.deprecated_license_url = deprecated_license_url

    def find_manual(self, name: str, version: str) -> Optional[LibraryInfo]:
        for entry in self.manual_information:
            if entry.package_name == name and entry.package_version == version:
                return entry
        return None

    def to_library_info(self, metadata: PackageMetadata, project: str) -> LibraryInfo:
        """Map fetched metadata to a LibraryInfo record.

        Manual values win: the URL, description and copyright when not
        blank; the authors, license type and license URL when given.
        """
        manual = self.find_manual(metadata.id, metadata.version)

        authors = [a.strip() for a in (metadata.authors or "").split(",") if a.strip()]
        license_file = ""
        if metadata.license is not None and metadata.license.is_license_file:
            license_file = metadata.license.text

        info = LibraryInfo(
            package_name=metadata.id or "",
            package_version=metadata.version or "",
            package_url=metadata.project_url or "",
            copyright=metadata.copyright or "",
            authors=authors,
            description=metadata.description or "",
            license_type=self.classifier.license_type(metadata, manual),
            license_url=metadata.license_url or "",
            license_file=license_file,
            projects=[project] if self.include_project_file else [],
            repository=metadata.repository,
            source_data=metadata.to_dict(),
        )

        if manual is None:
            return info

        if _non_blank(manual.package_url):
            info.package_url = manual.package_url
        if _non_blank(manual.description):
            info.description = manual.description
        if _non_blank(manual.copyright):
            info.copyright = manual.copyright
        if manual.authors:
            info.authors = list(manual.authors)
        if _non_blank(manual.license_url):
            info.license_url = manual.license_url
        return info

    def assemble(self, packages: dict[str, ProjectPackages]) -> list[LibraryInfo]:
        """Build the sorted records of every package of every project.

        A package referenced by several projects yields one record listing
        all of them. Manual entries that match no fetched package are
        appended as they are.

        Args:
            packages: Per-project results of the metadata fetcher.

        Returns:
            Records sorted by package name.
        """
        infos: dict[PackageIdentity, LibraryInfo] = {}
        for project, project_packages in packages.items():
            for metadata in project_packages.values():
                identity = metadata.identity
                existing = infos.get(identity)
                if existing is None:
                    infos[identity] = self.to_library_info(metadata, project)
                elif self.include_project_file and project not in existing.projects:
                    existing.projects.append(project)

        for entry in self.manual_information:
            if entry.identity not in infos:
                logger.debug("Adding manual entry %s without a fetched package", entry)
                infos[entry.identity] = dataclasses.replace(
                    entry, authors=list(entry.authors), projects=list(entry.projects)
                )

        return sorted(infos.values(), key=lambda info: info.package_name.lower())

    def remove_excluded(self, infos: Iterable[LibraryInfo]) -> list[LibraryInfo]:
        """Drop the packages whose name contains an excluded substring."""
        if not self.exclude_name_substrings:
            return list(infos)
        return [
            info
            for info in infos
            if not any(s in info.package_name.lower() for s in self.exclude_name_substrings)
        ]

    def rewrite_deprecated_license_urls(self, infos: Iterable[LibraryInfo]) -> list[LibraryInfo]:
        """Point the deprecated generic license URL to the package's license page."""
        result = list(infos)
        for info in result:
            if info.license_url == self.deprecated_license_url:
                info.license_url = NUGET_LICENSE_PAGE_URL.format(
                    name=info.package_name, version=info.package_version
                )
        return result
