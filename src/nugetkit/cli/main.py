import logging
import shlex
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import KNOWN_KEYS, Settings, load_settings, set_config_value
from ..domain.errors import NuGetKitError
from ..domain.models import (
    ALL_NUGET_ORG_CONFIGS,
    NUGET_ORG_V3,
    ConflictingLatestVersionStrategy,
    Package,
    PackageDescription,
)
from ..registry.client import PackageManagerClient
from ..registry.nuget_config import read_repository_configurations
from ..registry.nuget_exe import NuGetCommandLineClient
from ..registry.nuget_http import NuGetHttpClient
from ..services.retriever import PackageRetriever
from ..ui.progress import ProgressManager

app = typer.Typer(help="Find, download, inspect and delete NuGet packages.")
console = Console()


class StrategyChoice(str, Enum):
    highest = "highest"
    throw = "throw"

    def to_strategy(self) -> ConflictingLatestVersionStrategy:
        if self is StrategyChoice.throw:
            return ConflictingLatestVersionStrategy.THROW_EXCEPTION
        return ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION


def build_client(settings: Settings, progress_manager: ProgressManager, verbose: bool = False) -> PackageManagerClient:
    console_output = progress_manager.console_output(verbose)
    if settings.binding == "exe":
        configs = (
            read_repository_configurations(settings.nuget_config)
            if settings.nuget_config
            else list(ALL_NUGET_ORG_CONFIGS)
        )
        launcher = shlex.split(settings.nuget_launcher) if settings.nuget_launcher else None
        return NuGetCommandLineClient(
            configs,
            nuget_exe=settings.nuget_exe,
            launcher=launcher,
            console_output=console_output,
        )

    configs = [NUGET_ORG_V3]
    if settings.nuget_config:
        configs = read_repository_configurations(settings.nuget_config)
    return NuGetHttpClient(configs, console_output=console_output)


def get_retriever(verbose: bool = False) -> PackageRetriever:
    settings = load_settings()
    settings.working_directory.mkdir(parents=True, exist_ok=True)
    progress_manager = ProgressManager(console)
    client = build_client(settings, progress_manager, verbose)
    return PackageRetriever(
        settings.working_directory,
        client,
        retry_base_delay=settings.retry_base_delay,
        retry_max_attempts=settings.retry_max_attempts,
    )


def _fail(e: Exception):
    console.print(f"[red]Error:[/red] {e}", markup=True, highlight=False)
    raise typer.Exit(code=1)


@app.callback()
def main_callback(debug: bool = typer.Option(False, "--debug", help="Log debug output to stderr.")):
    """nugetkit command line."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)


@app.command()
def latest(
    package_id: str,
    prerelease: bool = typer.Option(True, "--prerelease/--no-prerelease"),
    include_delisted: bool = False,
    source: Optional[str] = None,
    strategy: StrategyChoice = StrategyChoice.highest,
    verbose: bool = False,
):
    """show the latest version of a package."""
    try:
        with get_retriever(verbose) as retriever:
            with ProgressManager(console).spinner(f"looking up {package_id}"):
                result = retriever.get_latest_version(
                    package_id, prerelease, include_delisted, source, strategy.to_strategy()
                )
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)

    if result is None:
        console.print(f"[yellow]Package '{package_id}' was not found.[/yellow]")
        raise typer.Exit(code=1)
    console.print(result.version)


@app.command()
def versions(
    package_id: str,
    prerelease: bool = typer.Option(True, "--prerelease/--no-prerelease"),
    include_delisted: bool = False,
    source: Optional[str] = None,
    verbose: bool = False,
):
    """list every version of a package."""
    try:
        with get_retriever(verbose) as retriever:
            found = retriever.get_all_versions(package_id, prerelease, include_delisted, source)
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)

    table = Table(title=package_id)
    table.add_column("Version", style="cyan")
    for description in sorted(found, key=lambda d: d.version or ""):
        table.add_row(description.version)
    console.print(table)


@app.command()
def download(
    package_ids: List[str],
    version: Optional[str] = typer.Option(None, help="Version for a single package; latest when omitted."),
    output: Path = typer.Option(Path("."), "--output", "-o"),
    include_dependencies: bool = False,
    prerelease: bool = typer.Option(True, "--prerelease/--no-prerelease"),
    include_delisted: bool = False,
    source: Optional[str] = None,
    strategy: StrategyChoice = StrategyChoice.highest,
    verbose: bool = False,
):
    """download packages into a directory."""
    if version and len(package_ids) > 1:
        _fail(ValueError("--version can only be used with a single package"))

    descriptions = [PackageDescription(id=package_id, version=version) for package_id in package_ids]
    try:
        with get_retriever(verbose) as retriever:
            with ProgressManager(console).spinner(f"downloading {', '.join(package_ids)}"):
                paths = retriever.download_packages(
                    descriptions,
                    output,
                    include_dependencies=include_dependencies,
                    include_prerelease=prerelease,
                    include_delisted=include_delisted,
                    source_name=source,
                    strategy=strategy.to_strategy(),
                )
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)

    for path in paths:
        console.print(f"[green]✓[/green] {path}")
    if not paths:
        console.print("[yellow]No new package files were written.[/yellow]")


@app.command()
def extract(
    archive: Path,
    pattern: str,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write matches here instead of listing them."),
):
    """find files inside a .nupkg whose path contains PATTERN."""
    if not archive.exists():
        _fail(FileNotFoundError(f"{archive} does not exist"))

    package = Package(description=PackageDescription(id=archive.stem), file_bytes=archive.read_bytes())
    try:
        with get_retriever() as retriever:
            matches = retriever.get_multiple_file_contents_from_package_as_bytes(package, pattern)
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)

    for name, data in matches.items():
        if output is None:
            console.print(f"{name} [dim]({len(data)} bytes)[/dim]")
            continue
        target = output / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        console.print(f"[green]✓[/green] {target}")
    if not matches:
        console.print(f"[yellow]No files match '{pattern}'.[/yellow]")


@app.command("nuspec-version")
def nuspec_version(nuspec: Path):
    """print the version declared in a .nuspec file."""
    from ..bundling.nuspec import extract_version

    try:
        version = extract_version(nuspec.read_text(encoding="utf-8"))
    except (NuGetKitError, OSError) as e:
        _fail(e)

    if version is None:
        _fail(ValueError(f"{nuspec} is empty"))
    console.print(version, markup=False, highlight=False)


@app.command()
def delete(
    package_id: str,
    version: str,
    source: str = typer.Option(..., help="Configured source name."),
    api_key: Optional[str] = typer.Option(None, envvar="NUGETKIT_API_KEY"),
    verbose: bool = False,
):
    """delete (or unlist) one version of a package."""
    try:
        with get_retriever(verbose) as retriever:
            retriever.delete_package(PackageDescription(id=package_id, version=version), source, api_key)
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted {package_id} {version} from {source}")


@app.command("delete-all")
def delete_all(
    package_id: str,
    source: str = typer.Option(..., help="Configured source name."),
    api_key: Optional[str] = typer.Option(None, envvar="NUGETKIT_API_KEY"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    verbose: bool = False,
):
    """delete (or unlist) every version of a package."""
    if not yes:
        typer.confirm(f"Delete every version of {package_id} from {source}?", abort=True)
    try:
        with get_retriever(verbose) as retriever:
            retriever.delete_all_versions_of_package(package_id, source, api_key)
    except (NuGetKitError, RuntimeError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted all versions of {package_id} from {source}")


@app.command("config")
def config_command(key: str, value: str):
    """set a configuration value (one of the NUGETKIT_* keys)."""
    try:
        set_config_value(key, value)
    except (ValueError, RuntimeError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] {key}={value}")


@app.command("config-keys")
def config_keys():
    """list the configuration keys."""
    for key in KNOWN_KEYS:
        console.print(key)


if __name__ == "__main__":
    app()
