"""reading and writing nuget.config files."""
import re
from pathlib import Path
from typing import Iterable, List
from xml.etree import ElementTree as ET

from ..bundling.nuspec import local_name
from ..domain.errors import InvalidArgumentError
from ..domain.models import PackageRepositoryConfiguration

_XML_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def _encode_element_name(name: str) -> str:
    # nuget stores credentials under an element named after the source, encoded like XmlConvert
    return _XML_NAME_UNSAFE.sub(lambda m: f"_x{ord(m.group(0)):04X}_", name)


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if local_name(child.tag) == name]


def read_repository_configurations(config_path: Path) -> List[PackageRepositoryConfiguration]:
    """
    the package sources declared in a nuget.config file.

    raises:
        InvalidArgumentError: if the file is missing, unparseable, has no
            package sources or declares an invalid protocolVersion
    """
    if not config_path.exists():
        raise InvalidArgumentError(f"nuget config file {config_path} does not exist on disk.")

    try:
        root = ET.fromstring(config_path.read_text(encoding="utf-8-sig"))
    except ET.ParseError as e:
        raise InvalidArgumentError(f"Could not parse nuget config file {config_path}") from e

    nodes = []
    if local_name(root.tag) == "configuration":
        for sources in _children(root, "packageSources"):
            nodes.extend(_children(sources, "add"))

    if not nodes:
        raise InvalidArgumentError(f"nuget config file {config_path} has no packageSources")

    configs = []
    for node in nodes:
        source_name = node.get("key")
        source = node.get("value")
        protocol_version_text = node.get("protocolVersion")
        protocol_version = None
        if protocol_version_text and protocol_version_text.strip():
            try:
                protocol_version = int(protocol_version_text)
            except ValueError as e:
                raise InvalidArgumentError(
                    f"In nuget config file {config_path} source '{source_name}:{source}' has an invalid protocolVersion"
                ) from e
        configs.append(PackageRepositoryConfiguration(
            source=source,
            source_name=source_name,
            protocol_version=protocol_version,
        ))
    return configs


def build_nuget_config(configs: Iterable[PackageRepositoryConfiguration]) -> str:
    """nuget.config contents declaring configs, with clear text credentials where present."""
    configs = list(configs)
    root = ET.Element("configuration")
    sources = ET.SubElement(root, "packageSources")
    active = ET.SubElement(root, "activePackageSource")
    credentials = ET.SubElement(root, "packageSourceCredentials")

    for config in configs:
        attributes = {"key": config.source_name or "", "value": config.source or ""}
        if config.protocol_version is not None:
            attributes["protocolVersion"] = str(config.protocol_version)
        ET.SubElement(sources, "add", attributes)
        ET.SubElement(active, "add", {"key": attributes["key"], "value": attributes["value"]})

        if config.has_credentials:
            entry = ET.SubElement(credentials, _encode_element_name(config.source_name or ""))
            ET.SubElement(entry, "add", {"key": "Username", "value": config.user_name})
            ET.SubElement(entry, "add", {"key": "ClearTextPassword", "value": config.clear_text_password or ""})

    ET.indent(root)
    return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def write_nuget_config(configs: Iterable[PackageRepositoryConfiguration], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_nuget_config(configs), encoding="utf-8")
    return path
