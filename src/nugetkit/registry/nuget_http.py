import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from ..domain.errors import CollaboratorError, InvalidArgumentError, UnsupportedProtocolError
from ..domain.models import NUGET_ORG_V3, PackageDescription, PackageRepositoryConfiguration
from ..ui.progress import ConsoleOutput
from ..versioning.comparator import strip_build_metadata
from .client import PackageManagerClient

logger = logging.getLogger(__name__)

TOOL_NAME = "NuGet API"

REGISTRATIONS_RESOURCE = "RegistrationsBaseUrl/3.6.0"
SEARCH_RESOURCE = "SearchQueryService"
PACKAGE_BASE_ADDRESS_RESOURCE = "PackageBaseAddress/3.0.0"
PUBLISH_RESOURCE = "PackagePublish/2.0.0"

SUPPORTED_PROTOCOL_VERSIONS = (None, 3)


def normalize_version(version: str) -> str:
    """the version as the flat container spells it: lowercase, no build metadata, no 4th zero."""
    version = strip_build_metadata(version).lower()
    numeric, dash, suffix = version.partition("-")
    parts = numeric.split(".")
    if len(parts) == 4 and parts[3] == "0":
        parts = parts[:3]
    return ".".join(parts) + dash + suffix


def is_prerelease(version: str) -> bool:
    return "-" in strip_build_metadata(version)


class NuGetHttpClient(PackageManagerClient):
    """talks to NuGet V3 feeds over http."""

    def __init__(
        self,
        repository_configurations: Sequence[PackageRepositoryConfiguration] = (NUGET_ORG_V3,),
        client: Optional[httpx.Client] = None,
        console_output: Optional[ConsoleOutput] = None,
        timeout: float = 30.0,
    ):
        configs = list(repository_configurations or [])
        if not configs:
            raise InvalidArgumentError("repository_configurations is empty")
        for config in configs:
            if config.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
                raise UnsupportedProtocolError(config.protocol_version)

        self.repository_configurations = configs
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.console_output = console_output or ConsoleOutput()
        self._service_indexes: Dict[str, dict] = {}

    def close(self) -> None:
        self.client.close()

    def list_latest(self, package_id, include_prerelease, include_delisted, source_name=None):
        result = []
        for config in self._sources(source_name):
            versions = self._registered_versions(config, package_id, include_prerelease, include_delisted)
            if versions:
                # registration pages are ordered by ascending version
                result.append(PackageDescription(id=package_id, version=versions[-1]))
        return result

    def search_latest(self, package_id, include_prerelease, include_delisted, source_name=None):
        result = []
        for config in self._sources(source_name):
            search_url = self._resource(config, SEARCH_RESOURCE)
            params = {
                "q": f"packageid:{package_id}",
                "prerelease": str(include_prerelease).lower(),
                "semVerLevel": "2.0.0",
            }
            data = self._get_json(config, search_url, params=params) or {}
            for hit in data.get("data", []):
                if str(hit.get("id", "")).casefold() == package_id.casefold() and hit.get("version"):
                    result.append(PackageDescription(id=package_id, version=hit["version"]))
        return result

    def list_all_versions(self, package_id, include_prerelease, include_delisted, source_name=None) -> List[PackageDescription]:
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id must be specified.")
        result = []
        for config in self._sources(source_name):
            for version in self._registered_versions(config, package_id, include_prerelease, include_delisted):
                result.append(PackageDescription(id=package_id, version=version))
        return result

    def install(
        self,
        package_id,
        version,
        output_directory,
        include_dependencies,
        include_prerelease,
        include_delisted,
        source_name=None,
    ) -> None:
        if include_dependencies:
            raise InvalidArgumentError(
                "installing dependencies needs a resolver; use the nuget.exe binding for include_dependencies"
            )

        lower_id = package_id.lower()
        lower_version = normalize_version(version)
        for config in self._sources(source_name):
            base_url = self._resource(config, PACKAGE_BASE_ADDRESS_RESOURCE).rstrip("/")
            url = f"{base_url}/{lower_id}/{lower_version}/{lower_id}.{lower_version}.nupkg"
            target_dir = Path(output_directory) / f"{package_id}.{version}"
            target_path = target_dir / f"{package_id}.{version}.nupkg"
            if self._download(config, url, target_path):
                return

        raise CollaboratorError(f"Unable to find version '{version}' of package '{package_id}'.")

    def delete(self, package_id, version, source_name, api_key=None) -> None:
        if not source_name or not source_name.strip():
            raise InvalidArgumentError("source_name is required")
        (config,) = self._sources(source_name)
        publish_url = self._resource(config, PUBLISH_RESOURCE).rstrip("/")
        url = f"{publish_url}/{package_id}/{version}"
        headers = {"X-NuGet-ApiKey": api_key} if api_key else {}

        self.console_output.command_started(TOOL_NAME, f"delete package id '{package_id}' version '{version}'", f"DELETE {url}")
        response = self._send(config, "DELETE", url, headers=headers)
        if response.status_code >= 400:
            raise CollaboratorError(
                f"{TOOL_NAME} reported an error: {response.status_code} {response.text}", response.text
            )
        self.console_output.command_completed(TOOL_NAME, f"{response.status_code} {response.reason_phrase}")

    def _sources(self, source_name: Optional[str]) -> List[PackageRepositoryConfiguration]:
        if not source_name or not source_name.strip():
            return self.repository_configurations
        matches = [
            c for c in self.repository_configurations
            if c.source_name and c.source_name.casefold() == source_name.casefold()
        ]
        if len(matches) != 1:
            raise InvalidArgumentError(f"source_name '{source_name}' is not a valid source")
        return matches

    @staticmethod
    def _auth(config: PackageRepositoryConfiguration) -> Optional[httpx.BasicAuth]:
        if not config.has_credentials:
            return None
        return httpx.BasicAuth(config.user_name, config.clear_text_password or "")

    def _send(self, config: PackageRepositoryConfiguration, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            return self.client.request(method, url, auth=self._auth(config), **kwargs)
        except httpx.HTTPError as e:
            raise CollaboratorError(f"{TOOL_NAME} request to {url} failed: {e}", str(e)) from e

    def _get_json(self, config: PackageRepositoryConfiguration, url: str, params: Optional[dict] = None) -> Optional[dict]:
        """the decoded json body, or None for a 404."""
        response = self._send(config, "GET", url, params=params)
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise CollaboratorError(
                f"{TOOL_NAME} reported an error: {response.status_code} {response.text}", response.text
            )
        return response.json()

    def _service_index(self, config: PackageRepositoryConfiguration) -> dict:
        if config.source not in self._service_indexes:
            index = self._get_json(config, config.source)
            if index is None:
                raise CollaboratorError(f"{TOOL_NAME} found no service index at {config.source}")
            self._service_indexes[config.source] = index
        return self._service_indexes[config.source]

    def _resource(self, config: PackageRepositoryConfiguration, resource_type: str) -> str:
        resources = self._service_index(config).get("resources", [])
        for resource in resources:
            if resource.get("@type") == resource_type and resource.get("@id"):
                return resource["@id"]
        # fall back to any version of the resource, e.g. SearchQueryService/3.5.0
        family = resource_type.split("/", 1)[0]
        for resource in resources:
            if str(resource.get("@type", "")).split("/", 1)[0] == family and resource.get("@id"):
                return resource["@id"]
        raise CollaboratorError(f"{config.source} does not offer a {resource_type} resource")

    def _catalog_entries(self, config: PackageRepositoryConfiguration, package_id: str) -> Iterable[dict]:
        base_url = self._resource(config, REGISTRATIONS_RESOURCE)
        if not base_url.endswith("/"):
            base_url += "/"
        self.console_output.command_started(TOOL_NAME, f"list versions of '{package_id}'", base_url)
        registration = self._get_json(config, f"{base_url}{package_id.lower()}/index.json")
        if registration is None:
            return []

        entries = []
        for page in registration.get("items", []):
            leaves = page.get("items")
            if leaves is None:
                # large registrations only link their pages
                leaves = (self._get_json(config, page["@id"]) or {}).get("items", [])
            for leaf in leaves:
                entry = leaf.get("catalogEntry")
                if isinstance(entry, dict) and entry.get("version"):
                    entries.append(entry)
        self.console_output.command_completed(TOOL_NAME, f"{len(entries)} versions found")
        return entries

    def _registered_versions(self, config, package_id, include_prerelease, include_delisted) -> List[str]:
        versions = []
        for entry in self._catalog_entries(config, package_id):
            version = entry["version"]
            if not include_prerelease and is_prerelease(version):
                continue
            if not include_delisted and not entry.get("listed", True):
                continue
            versions.append(version)
        return versions

    def _download(self, config: PackageRepositoryConfiguration, url: str, target_path: Path) -> bool:
        """stream url into target_path; False when the source does not have it."""
        self.console_output.command_started(TOOL_NAME, f"download {target_path.name}", url)
        logger.debug(f"GET {url}")
        try:
            with self.client.stream("GET", url, auth=self._auth(config)) as response:
                if response.status_code == 404:
                    return False
                if response.status_code >= 400:
                    response.read()
                    raise CollaboratorError(
                        f"{TOOL_NAME} reported an error: {response.status_code} {response.text}", response.text
                    )
                target_path.parent.mkdir(parents=True, exist_ok=True)
                with open(target_path, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise CollaboratorError(f"{TOOL_NAME} request to {url} failed: {e}", str(e)) from e

        self.console_output.command_completed(TOOL_NAME, f"saved {target_path}")
        return True
