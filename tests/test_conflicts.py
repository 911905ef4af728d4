"""test suite for latest-version conflict resolution."""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nugetkit.domain.errors import ConflictingVersionsError, InvalidArgumentError, UnsupportedVersionComparisonError
from nugetkit.domain.models import ConflictingLatestVersionStrategy, PackageDescription
from nugetkit.resolution.conflicts import fold_latest, resolve_latest

HIGHEST = ConflictingLatestVersionStrategy.USE_HIGHEST_VERSION
THROW = ConflictingLatestVersionStrategy.THROW_EXCEPTION


def pkg(version):
    return PackageDescription(id="Some.Package", version=version)


class TestResolveLatest:
    @pytest.mark.parametrize("strategy", [HIGHEST, THROW])
    def test_both_absent(self, strategy):
        assert resolve_latest(None, None, strategy) is None

    @pytest.mark.parametrize("strategy", [HIGHEST, THROW])
    def test_one_absent(self, strategy):
        assert resolve_latest(pkg("1.0.0"), None, strategy) == pkg("1.0.0")
        assert resolve_latest(None, pkg("2.0.0"), strategy) == pkg("2.0.0")

    def test_highest_wins(self):
        assert resolve_latest(pkg("1.0.0"), pkg("1.0.1"), HIGHEST) == pkg("1.0.1")
        assert resolve_latest(pkg("1.10.0"), pkg("1.9.0"), HIGHEST) == pkg("1.10.0")

    def test_equal_versions_return_first(self):
        first = PackageDescription(id="first", version="1.0")
        second = PackageDescription(id="second", version="1.0.0")
        assert resolve_latest(first, second, HIGHEST).id == "first"
        assert resolve_latest(first, second, THROW).id == "first"

    def test_throw_on_difference(self):
        with pytest.raises(ConflictingVersionsError) as exc_info:
            resolve_latest(pkg("1.0.0"), pkg("2.0.0"), THROW)
        message = str(exc_info.value)
        assert "1.0.0" in message
        assert "2.0.0" in message
        assert "ThrowException" in message
        assert "Some.Package" in message
        assert exc_info.value.first_version == "1.0.0"
        assert exc_info.value.second_version == "2.0.0"

    def test_suffix_only_difference_is_unsupported(self):
        with pytest.raises(UnsupportedVersionComparisonError) as exc_info:
            resolve_latest(pkg("1.2.3-beta1"), pkg("1.2.3-beta2"), HIGHEST)
        message = str(exc_info.value)
        assert "1.2.3-beta1" in message
        assert "1.2.3-beta2" in message
        assert "UseHighestVersion" in message

    def test_unsupported_comparison_is_a_conflict(self):
        assert issubclass(UnsupportedVersionComparisonError, ConflictingVersionsError)

    def test_suffix_with_different_numbers_compares_numbers(self):
        assert resolve_latest(pkg("1.2.3-beta"), pkg("1.2.4-alpha"), HIGHEST) == pkg("1.2.4-alpha")

    def test_package_id_override_in_message(self):
        with pytest.raises(ConflictingVersionsError, match="Other.Id"):
            resolve_latest(pkg("1.0"), pkg("2.0"), THROW, package_id="Other.Id")


class TestFoldLatest:
    def test_empty(self):
        assert fold_latest([], HIGHEST) is None

    def test_picks_highest_across_many(self):
        candidates = [pkg("1.0.0"), pkg("3.0.0"), None, pkg("2.5.0")]
        assert fold_latest(candidates, HIGHEST) == pkg("3.0.0")

    def test_throw_when_any_disagree(self):
        with pytest.raises(ConflictingVersionsError):
            fold_latest([pkg("1.0.0"), pkg("1.0.0"), pkg("1.0.1")], THROW)

    def test_all_equal_under_throw(self):
        assert fold_latest([pkg("1.0.0"), pkg("1.0")], THROW) == pkg("1.0.0")


def test_unknown_strategy_is_rejected():
    with pytest.raises(InvalidArgumentError, match="not supported"):
        resolve_latest(pkg("1.0.0"), pkg("2.0.0"), "LowestVersion")
