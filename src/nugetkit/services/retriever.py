import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from ..bundling.archive import decode_contents, extract_matching_files
from ..bundling.nuspec import extract_version
from ..domain.errors import CollaboratorError, InvalidArgumentError, PackageNotFoundError
from ..domain.models import ConflictingLatestVersionStrategy, Package, PackageDescription
from ..registry.client import PackageManagerClient
from ..resolution.conflicts import fold_latest, resolve_latest
from ..utils.retry import run_with_retry
from ..utils.workdir import scoped_directory, snapshot_files

logger = logging.getLogger(__name__)

PACKAGE_FILE_EXTENSION = ".nupkg"
DOWNLOAD_DIRECTORY_PREFIX = "Down-"


class PackageRetriever:
    """
    gets, downloads, inspects and deletes NuGet packages through a PackageManagerClient.

    every call blocks until done. closing the retriever closes its client.
    """

    def __init__(
        self,
        default_working_directory: Path,
        client: PackageManagerClient,
        retry_base_delay: float = 5.0,
        retry_max_attempts: int = 5,
    ):
        """
        args:
            default_working_directory: existing directory for per-call scratch space
            client: the nuget binding doing the real work
            retry_base_delay: seconds of linear back-off between download attempts
            retry_max_attempts: download attempts before giving up

        raises:
            InvalidArgumentError: if default_working_directory does not exist
        """
        default_working_directory = Path(default_working_directory)
        if not default_working_directory.is_dir():
            raise InvalidArgumentError(f"working directory {default_working_directory} does not exist on disk.")
        if client is None:
            raise InvalidArgumentError("client must be specified")

        self.default_working_directory = default_working_directory
        self.client = client
        self.retry_base_delay = retry_base_delay
        self.retry_max_attempts = retry_max_attempts

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def get_latest_version(
        self,
        package_id: str,
        include_prerelease: bool = True,
        include_delisted: bool = False,
        source_name: Optional[str] = None,
        strategy: ConflictingLatestVersionStrategy = ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION,
    ) -> Optional[PackageDescription]:
        """
        latest version of a package across the configured sources.

        the list and search channels are asked separately; each answer is
        folded across sources and the two are then reconciled with strategy.

        returns:
            the latest description, or None if no source knows the package

        raises:
            ConflictingVersionsError: sources disagree and strategy is THROW_EXCEPTION
        """
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id cannot be null nor whitespace.")

        from_list = fold_latest(
            self.client.list_latest(package_id, include_prerelease, include_delisted, source_name),
            strategy,
            package_id,
        )
        from_search = fold_latest(
            self.client.search_latest(package_id, include_prerelease, include_delisted, source_name),
            strategy,
            package_id,
        )
        return resolve_latest(from_list, from_search, strategy, package_id)

    def get_all_versions(
        self,
        package_id: str,
        include_prerelease: bool = True,
        include_delisted: bool = False,
        source_name: Optional[str] = None,
    ) -> Set[PackageDescription]:
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id must be specified.")
        return set(self.client.list_all_versions(package_id, include_prerelease, include_delisted, source_name))

    def download_packages(
        self,
        descriptions: Iterable[PackageDescription],
        working_directory: Path,
        include_dependencies: bool = False,
        include_prerelease: bool = True,
        include_delisted: bool = False,
        source_name: Optional[str] = None,
        strategy: ConflictingLatestVersionStrategy = ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION,
    ) -> List[Path]:
        """
        download packages into working_directory.

        descriptions without a version get the latest one. the collaborator does
        not say what it wrote, so the result is every .nupkg file that appeared
        in working_directory between the start and the end of the whole batch.
        a file that already existed under the same name is not reported.

        raises:
            PackageNotFoundError: if no version can be found for a description
            CollaboratorError: if a download still fails after all retries
        """
        working_directory = Path(working_directory)
        working_directory.mkdir(parents=True, exist_ok=True)
        before = snapshot_files(working_directory)

        for description in descriptions or []:
            version = self._resolve_version(
                description, include_prerelease, include_delisted, source_name, strategy
            )
            logger.debug(f"downloading {description.id} {version} into {working_directory}")
            run_with_retry(
                lambda: self.client.install(
                    description.id,
                    version,
                    working_directory,
                    include_dependencies,
                    include_prerelease,
                    include_delisted,
                    source_name,
                ),
                base_delay=self.retry_base_delay,
                max_attempts=self.retry_max_attempts,
            )

        after = snapshot_files(working_directory)
        return sorted(p for p in after - before if p.name.lower().endswith(PACKAGE_FILE_EXTENSION))

    def get_package_file(self, description: PackageDescription) -> bytes:
        """raw .nupkg bytes of one package, downloaded into a scratch directory that is then removed."""
        return self._download_single(description)[1]

    def get_package(self, description: PackageDescription) -> Package:
        """
        download one package.

        the returned package's description always carries a concrete version,
        resolved to the latest one when description has none.
        """
        resolved, file_bytes = self._download_single(description)
        return Package(
            description=resolved,
            file_bytes=file_bytes,
            retrieved_at_utc=datetime.now(timezone.utc),
        )

    def get_multiple_file_contents_from_package_as_bytes(
        self, package: Package, search_pattern: str
    ) -> Dict[str, bytes]:
        if package is None:
            raise InvalidArgumentError("package must be specified")
        return extract_matching_files(package.file_bytes, search_pattern, self.default_working_directory)

    def get_multiple_file_contents_from_package_as_strings(
        self, package: Package, search_pattern: str, encoding: str = "utf-8"
    ) -> Dict[str, str]:
        return decode_contents(
            self.get_multiple_file_contents_from_package_as_bytes(package, search_pattern),
            encoding or "utf-8",
        )

    def get_version_from_nuspec(self, nuspec_contents: Optional[str]) -> Optional[str]:
        return extract_version(nuspec_contents)

    def delete_package(self, description: PackageDescription, source_name: str, api_key: Optional[str] = None):
        """
        delete one package version from a source.

        the source decides whether that deletes or unlists; an unknown package and
        an unknown version both come back as the collaborator's raw error.
        """
        if description is None:
            raise InvalidArgumentError("description must be specified")
        if not description.id or not description.id.strip():
            raise InvalidArgumentError("description id is required")
        if not description.has_version:
            raise InvalidArgumentError("description version is required")
        if not source_name or not source_name.strip():
            raise InvalidArgumentError("source_name is required")

        self.client.delete(description.id, description.version, source_name, api_key)

    def delete_all_versions_of_package(self, package_id: str, source_name: str, api_key: Optional[str] = None):
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id is required")
        if not source_name or not source_name.strip():
            raise InvalidArgumentError("source_name is required")

        descriptions = self.get_all_versions(
            package_id, include_prerelease=True, include_delisted=True, source_name=source_name
        )
        for description in sorted(descriptions, key=lambda d: d.version or ""):
            self.delete_package(description, source_name, api_key)

    def _resolve_version(
        self,
        description: PackageDescription,
        include_prerelease: bool,
        include_delisted: bool,
        source_name: Optional[str],
        strategy: ConflictingLatestVersionStrategy,
    ) -> str:
        if description is None or not description.id or not description.id.strip():
            raise InvalidArgumentError("description id is required")
        if description.has_version:
            return description.version

        latest = self.get_latest_version(description.id, include_prerelease, include_delisted, source_name, strategy)
        if latest is None or not latest.has_version:
            raise PackageNotFoundError(description.id)
        return latest.version

    def _download_single(self, description: PackageDescription):
        if description is None:
            raise InvalidArgumentError("description must be specified")

        resolved = description.with_version(
            self._resolve_version(
                description, True, False, None, ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION
            )
        )
        with scoped_directory(self.default_working_directory, DOWNLOAD_DIRECTORY_PREFIX) as working_directory:
            paths = self.download_packages([resolved], working_directory)
            if not paths:
                raise CollaboratorError(f"no {PACKAGE_FILE_EXTENSION} file was produced for {resolved}")
            if len(paths) > 1:
                raise CollaboratorError(
                    f"expected one {PACKAGE_FILE_EXTENSION} file for {resolved}, found {len(paths)}"
                )
            return resolved, paths[0].read_bytes()
