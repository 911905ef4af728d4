from typing import List, Optional
from xml.etree import ElementTree as ET

from ..domain.errors import (
    MissingMetadataError,
    MissingVersionError,
    MultipleMetadataError,
    MultipleVersionError,
    NotParseableError,
)

BYTE_ORDER_MARK = "\ufeff"

MISSING_METADATA_MESSAGE = "Could not find metadata in the provided NuSpec."
MULTIPLE_METADATA_MESSAGE = "Found multiple metadata nodes in the provided NuSpec."
MISSING_VERSION_MESSAGE = "Could not find the version in the provided NuSpec."
MULTIPLE_VERSION_MESSAGE = "Found multiple version nodes in the provided NuSpec."
NOT_PARSEABLE_MESSAGE = "NuSpec contents is not valid to be parsed."


def local_name(tag) -> str:
    """element tag without its '{namespace}' prefix."""
    if not isinstance(tag, str):
        # comments and processing instructions
        return ""
    return tag.rsplit("}", 1)[-1]


def namespace_of(tag) -> str:
    """the '{namespace}' prefix of an element tag, '' when it has none."""
    if not isinstance(tag, str) or not tag.startswith("{"):
        return ""
    return tag[: tag.index("}") + 1]


def _children_named(element: ET.Element, name: str) -> List[ET.Element]:
    # children must share the parent's namespace, so a prefixed <x:version> does not count
    return [child for child in element if child.tag == namespace_of(element.tag) + name]


def extract_version(contents: Optional[str]) -> Optional[str]:
    """
    read the version out of a nuspec document, whatever its default namespace.

    args:
        contents: nuspec xml text, optionally starting with a byte-order mark

    returns:
        the text of package/metadata/version exactly as written, or None when
        contents is empty

    raises:
        MissingMetadataError, MultipleMetadataError: package/metadata count is not 1
        MissingVersionError, MultipleVersionError: metadata/version count is not 1
        NotParseableError: contents is not well-formed xml
    """
    if not contents:
        return None

    if contents.startswith(BYTE_ORDER_MARK):
        contents = contents[len(BYTE_ORDER_MARK):]

    try:
        root = ET.fromstring(contents)
    except ET.ParseError as e:
        raise NotParseableError(NOT_PARSEABLE_MESSAGE) from e

    metadata_nodes = _children_named(root, "metadata") if local_name(root.tag) == "package" else []
    if not metadata_nodes:
        raise MissingMetadataError(MISSING_METADATA_MESSAGE)
    if len(metadata_nodes) > 1:
        raise MultipleMetadataError(MULTIPLE_METADATA_MESSAGE)

    version_nodes = _children_named(metadata_nodes[0], "version")
    if not version_nodes:
        raise MissingVersionError(MISSING_VERSION_MESSAGE)
    if len(version_nodes) > 1:
        raise MultipleVersionError(MULTIPLE_VERSION_MESSAGE)

    return "".join(version_nodes[0].itertext())
