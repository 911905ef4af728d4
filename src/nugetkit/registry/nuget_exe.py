import logging
import secrets
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from ..domain.errors import CollaboratorError, InvalidArgumentError
from ..domain.models import PackageDescription, PackageRepositoryConfiguration
from ..ui.progress import ConsoleOutput
from .client import PackageManagerClient
from .nuget_config import write_nuget_config
from .output_parser import parse_list_output, parse_search_output

logger = logging.getLogger(__name__)

TOOL_NAME = "nuget.exe"

PACKAGES_CONFIG_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<packages>
  <package id="{id}" version="{version}" />
</packages>
"""


class NuGetCommandLineClient(PackageManagerClient):
    """drives nuget.exe as a subprocess."""

    def __init__(
        self,
        repository_configurations: Sequence[PackageRepositoryConfiguration],
        nuget_exe: str = "nuget",
        launcher: Optional[Sequence[str]] = None,
        temp_directory: Optional[Path] = None,
        console_output: Optional[ConsoleOutput] = None,
    ):
        """
        args:
            repository_configurations: sources nuget.exe may use, at least one
            nuget_exe: path or name of nuget.exe
            launcher: command prefix, e.g. ["mono"] on linux and macos
            temp_directory: scratch space for packages.config and nuget.config
                files; a private temp directory is created when omitted
            console_output: receives the arguments and raw output of every run
        """
        if repository_configurations is None:
            raise InvalidArgumentError("repository_configurations must be specified")
        configs = list(repository_configurations)
        if any(c is None for c in configs):
            raise InvalidArgumentError("repository_configurations contains null element")
        if not configs:
            raise InvalidArgumentError("repository_configurations is empty")

        self.repository_configurations = configs
        self.nuget_exe = str(nuget_exe)
        self.launcher = list(launcher or [])
        self.console_output = console_output or ConsoleOutput()

        self._owns_temp_directory = temp_directory is None
        if temp_directory is None:
            temp_directory = Path(tempfile.mkdtemp(prefix="nugetkit-"))
        temp_directory.mkdir(parents=True, exist_ok=True)
        self.temp_directory = temp_directory
        self._config_file: Optional[Path] = None

    def close(self) -> None:
        if self._owns_temp_directory and self.temp_directory.exists():
            shutil.rmtree(self.temp_directory, ignore_errors=True)

    def list_latest(self, package_id, include_prerelease, include_delisted, source_name=None):
        output = self._run_package_search(package_id, "list", include_prerelease, include_delisted, source_name)
        return parse_list_output(output, package_id)

    def search_latest(self, package_id, include_prerelease, include_delisted, source_name=None):
        output = self._run_package_search(package_id, "search", include_prerelease, include_delisted, source_name)
        return parse_search_output(output, package_id)

    def list_all_versions(self, package_id, include_prerelease, include_delisted, source_name=None) -> List[PackageDescription]:
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id must be specified.")
        arguments = ["list", package_id, "-allversions"]
        arguments += self._filter_arguments(include_prerelease, include_delisted)
        arguments += self.source_arguments(source_name)
        output = self._run(arguments, f"list all packages for packageId '{package_id}'")
        return parse_list_output(output, package_id)

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
            to_install = package_id
        else:
            # nuget.exe only skips dependencies when installing from a packages.config
            to_install = str(self._write_packages_config(package_id, version))

        arguments = [
            "install", to_install,
            "-outputdirectory", str(output_directory),
            "-version", version,
            "-prerelease",
        ]
        arguments += self.source_arguments(source_name)
        self._run(arguments, f"download '{package_id}-{version}'")

    def delete(self, package_id, version, source_name, api_key=None) -> None:
        arguments = ["delete", package_id, version] + self.source_arguments(source_name)
        if api_key and api_key.strip():
            arguments += ["-ApiKey", api_key]

        # nuget.org answers 404 both for unknown packages and for versions that never existed;
        # deleting an unlisted version succeeds
        self._run(
            arguments,
            f"delete package id '{package_id}' version '{version}'",
            use_config_file=False,
            loggable_arguments=_redact(arguments, "-ApiKey"),
        )

    def source_arguments(self, source_name: Optional[str]) -> List[str]:
        """['-source', url] for a configured source name, [] when source_name is empty."""
        if not source_name or not source_name.strip():
            return []
        matches = [
            c for c in self.repository_configurations
            if c.source_name and c.source_name.casefold() == source_name.casefold()
        ]
        if len(matches) != 1:
            raise InvalidArgumentError(f"source_name '{source_name}' is not a valid source in the nuget config")
        return ["-source", matches[0].source]

    @staticmethod
    def _filter_arguments(include_prerelease: bool, include_delisted: bool) -> List[str]:
        arguments = []
        if include_prerelease:
            arguments.append("-prerelease")
        if include_delisted:
            arguments.append("-includedelisted")
        return arguments

    def _run_package_search(self, package_id, verb, include_prerelease, include_delisted, source_name) -> str:
        if not package_id or not package_id.strip():
            raise InvalidArgumentError("package_id cannot be null nor whitespace.")
        arguments = [verb, package_id]
        arguments += self._filter_arguments(include_prerelease, include_delisted)
        arguments += self.source_arguments(source_name)
        return self._run(arguments, f"list latest package for packageId '{package_id}'")

    def _write_packages_config(self, package_id: str, version: str) -> Path:
        # the file has to be called packages.config, so each one gets its own directory
        directory = self.temp_directory / secrets.token_hex(6)
        directory.mkdir(parents=True)
        path = directory / "packages.config"
        path.write_text(PACKAGES_CONFIG_TEMPLATE.format(id=package_id, version=version), encoding="utf-8")
        return path

    def _config_file_arguments(self) -> List[str]:
        if not any(c.has_credentials for c in self.repository_configurations):
            return []
        if self._config_file is None:
            self._config_file = write_nuget_config(
                self.repository_configurations, self.temp_directory / "nuget.config"
            )
        return ["-configfile", str(self._config_file)]

    def command(self, arguments: List[str], use_config_file: bool = True) -> List[str]:
        """the full command line for a nuget.exe invocation."""
        command = self.launcher + [self.nuget_exe] + arguments + ["-noninteractive"]
        if use_config_file:
            command += self._config_file_arguments()
        return command

    def _run(
        self,
        arguments: List[str],
        purpose: str,
        use_config_file: bool = True,
        loggable_arguments: Optional[List[str]] = None,
    ) -> str:
        command = self.command(arguments, use_config_file)
        shown = " ".join(loggable_arguments or arguments)
        logger.debug(f"running {self.nuget_exe} {shown}")
        self.console_output.command_started(f"{TOOL_NAME} ({self.nuget_exe})", purpose, shown)

        try:
            completed = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise CollaboratorError(f"{TOOL_NAME} could not be started.", str(e)) from e

        if completed.returncode != 0:
            raise CollaboratorError(f"{TOOL_NAME} reported an error: {completed.stderr}", completed.stdout)

        self.console_output.command_completed(TOOL_NAME, completed.stdout)
        return completed.stdout


def _redact(arguments: List[str], flag: str) -> List[str]:
    redacted = list(arguments)
    for i, argument in enumerate(redacted[:-1]):
        if argument == flag:
            redacted[i + 1] = "***"
    return redacted
