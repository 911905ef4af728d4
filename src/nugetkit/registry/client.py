from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path

from ..domain.models import PackageDescription

class PackageManagerClient(ABC):
    """the NuGet capabilities nugetkit builds on; failures raise CollaboratorError."""

    @abstractmethod
    def list_latest(
        self,
        package_id: str,
        include_prerelease: bool,
        include_delisted: bool,
        source_name: Optional[str] = None,
    ) -> List[PackageDescription]:
        """Latest version per source, found through the list channel."""
        pass

    @abstractmethod
    def search_latest(
        self,
        package_id: str,
        include_prerelease: bool,
        include_delisted: bool,
        source_name: Optional[str] = None,
    ) -> List[PackageDescription]:
        """Latest version per source, found through the search channel."""
        pass

    @abstractmethod
    def list_all_versions(
        self,
        package_id: str,
        include_prerelease: bool,
        include_delisted: bool,
        source_name: Optional[str] = None,
    ) -> List[PackageDescription]:
        """Every version of a package."""
        pass

    @abstractmethod
    def install(
        self,
        package_id: str,
        version: str,
        output_directory: Path,
        include_dependencies: bool,
        include_prerelease: bool,
        include_delisted: bool,
        source_name: Optional[str] = None,
    ) -> None:
        """Download a package (and optionally its dependencies) below output_directory."""
        pass

    @abstractmethod
    def delete(self, package_id: str, version: str, source_name: str, api_key: Optional[str] = None) -> None:
        """Delete (or unlist, depending on the server) one package version."""
        pass

    def close(self) -> None:
        """Release anything the client holds; safe to call twice."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
