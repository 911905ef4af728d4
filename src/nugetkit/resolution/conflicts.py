from typing import Iterable, Optional

from ..domain.errors import ConflictingVersionsError, InvalidArgumentError, UnsupportedVersionComparisonError
from ..domain.models import ConflictingLatestVersionStrategy, PackageDescription
from ..versioning.comparator import compare_versions, parse_version, versions_differ_only_by_suffix


def _conflict_message(package_id: str, strategy: ConflictingLatestVersionStrategy, first: str, second: str) -> str:
    return (
        f"The latest version of package {package_id} is different in multiple galleries "
        f"and ConflictingLatestVersionStrategy is {strategy.value}.  "
        f"Versions found: {first} and {second}"
    )


def resolve_latest(
    first: Optional[PackageDescription],
    second: Optional[PackageDescription],
    strategy: ConflictingLatestVersionStrategy = ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION,
    package_id: Optional[str] = None,
) -> Optional[PackageDescription]:
    """
    pick one 'latest version' answer out of two independently obtained ones.

    args:
        first: candidate found first (wins ties)
        second: candidate found second
        strategy: how to handle two different versions
        package_id: id used in error messages, defaults to the candidates' id

    returns:
        the winning description, or None when both are absent

    raises:
        ConflictingVersionsError: versions differ and strategy is THROW_EXCEPTION
        UnsupportedVersionComparisonError: versions only differ by suffix and
            strategy is USE_HIGHEST_VERSION
    """
    if first is None:
        return second
    if second is None:
        return first

    package_id = package_id or first.id
    ordering = compare_versions(parse_version(first.version), parse_version(second.version))

    if strategy == ConflictingLatestVersionStrategy.THROW_EXCEPTION:
        if ordering != 0:
            raise ConflictingVersionsError(
                _conflict_message(package_id, strategy, first.version, second.version),
                first.version,
                second.version,
            )
        return first

    if strategy == ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION:
        if versions_differ_only_by_suffix(first.version, second.version):
            raise UnsupportedVersionComparisonError(
                _conflict_message(package_id, strategy, first.version, second.version)
                + ".  These two versions have the same Major.Minor.Patch version (e.g. 1.2.3).  "
                "Comparing [-Suffix] (e.g. 1.2.3-beta1, 1.2.3-beta2) is not supported.",
                first.version,
                second.version,
            )
        return second if ordering < 0 else first

    raise InvalidArgumentError(f"This ConflictingLatestVersionStrategy is not supported: {strategy}")


def fold_latest(
    candidates: Iterable[Optional[PackageDescription]],
    strategy: ConflictingLatestVersionStrategy = ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION,
    package_id: Optional[str] = None,
) -> Optional[PackageDescription]:
    """apply resolve_latest pairwise, left to right, over any number of candidates."""
    result = None
    for candidate in candidates:
        result = resolve_latest(result, candidate, strategy, package_id)
    return result
