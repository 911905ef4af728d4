import re
from typing import Optional

from packaging.version import Version

from ..domain.errors import MalformedVersionError

_NUMERIC_VERSION = re.compile(r"^\d+(\.\d+)*$")


def strip_build_metadata(version: str) -> str:
    """the version without its semver 2 '+build' part."""
    return version.split("+", 1)[0]


def numeric_part(version: Optional[str]) -> str:
    """the part of a version string before the first '-' (the pre-release tag)."""
    if version is None:
        raise MalformedVersionError(version)
    segments = [s for s in strip_build_metadata(version).split("-") if s]
    if not segments:
        raise MalformedVersionError(version)
    return segments[0].strip()


def parse_version(version: Optional[str]) -> Version:
    """
    parse the numeric prefix of a version, ignoring any -suffix and +build metadata.

    "1.2.3-beta1" parses to the same value as "1.2.3"; versions with different
    component counts compare as if padded with zeros ("1.0" == "1.0.0").

    raises:
        MalformedVersionError: if the prefix is not dot-separated integers
    """
    numeric = numeric_part(version)
    if not _NUMERIC_VERSION.match(numeric):
        raise MalformedVersionError(version)
    return Version(numeric)


def compare_versions(first: Version, second: Version) -> int:
    """-1, 0 or 1 as first is lower, equal to or higher than second."""
    if first < second:
        return -1
    if first > second:
        return 1
    return 0


def suffix_part(version: str) -> str:
    """the pre-release tag of a version ('' when there is none)."""
    _, _, suffix = strip_build_metadata(version.strip()).partition("-")
    return suffix


def versions_differ_only_by_suffix(first: str, second: str) -> bool:
    # suffixes are not ordered, so 1.2.3-beta1 vs 1.2.3-beta2 has no winner
    return (
        compare_versions(parse_version(first), parse_version(second)) == 0
        and suffix_part(first).casefold() != suffix_part(second).casefold()
    )
