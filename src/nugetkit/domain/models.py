from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

NULL_PACKAGE_ID = "NullPackage"

_MODEL_CONFIG = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")


def _fold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


class ConflictingLatestVersionStrategy(str, Enum):
    """what to do when sources disagree on the latest version of a package."""
    USE_HIGHEST_VERSION = "UseHighestVersion"
    THROW_EXCEPTION = "ThrowException"


class PackageDescription(BaseModel):
    """identifies a package; an empty version means 'latest at call time'."""
    model_config = _MODEL_CONFIG

    id: Optional[str] = None
    version: Optional[str] = None

    @property
    def has_version(self) -> bool:
        return bool(self.version and self.version.strip())

    @property
    def id_dot_version(self) -> str:
        version = self.version if self.version else "[UnspecifiedVersion]"
        return f"{self.id}.{version}"

    def with_version(self, version: str) -> "PackageDescription":
        return self.model_copy(update={"version": version})

    def __str__(self) -> str:
        return self.id_dot_version

    def __eq__(self, other) -> bool:
        if not isinstance(other, PackageDescription):
            return NotImplemented
        return _fold(self.id) == _fold(other.id) and _fold(self.version) == _fold(other.version)

    def __hash__(self) -> int:
        return hash((_fold(self.id), _fold(self.version)))


def distinct_package_ids_match_exactly(
    first: Iterable[PackageDescription],
    second: Iterable[PackageDescription],
) -> bool:
    """true when both collections name the same package ids, ignoring case and versions."""
    first_ids = sorted({_fold(d.id) for d in first if d.id is not None})
    second_ids = sorted({_fold(d.id) for d in second if d.id is not None})
    return first_ids == second_ids


class PackageRepositoryConfiguration(BaseModel):
    """one queryable/downloadable package source."""
    model_config = _MODEL_CONFIG

    source: Optional[str] = None
    source_name: Optional[str] = None
    user_name: Optional[str] = None
    clear_text_password: Optional[str] = Field(default=None, repr=False)
    protocol_version: Optional[int] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.user_name)

    def _key(self):
        return (
            _fold(self.source),
            _fold(self.source_name),
            _fold(self.user_name),
            _fold(self.clear_text_password),
            self.protocol_version,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PackageRepositoryConfiguration):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


NUGET_ORG_V2 = PackageRepositoryConfiguration(
    source="https://www.nuget.org/api/v2/",
    source_name="nugetv2",
    protocol_version=2,
)

NUGET_ORG_V3 = PackageRepositoryConfiguration(
    source="https://api.nuget.org/v3/index.json",
    source_name="nugetv3",
    protocol_version=3,
)

ALL_NUGET_ORG_CONFIGS = (NUGET_ORG_V2, NUGET_ORG_V3)


class Package(BaseModel):
    """a downloaded package archive as of the moment it was retrieved."""
    model_config = _MODEL_CONFIG

    description: Optional[PackageDescription] = None
    file_bytes: Optional[bytes] = Field(default=None, repr=False)
    retrieved_at_utc: Optional[datetime] = None

    def __eq__(self, other) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return (
            self.description == other.description
            and self.retrieved_at_utc == other.retrieved_at_utc
            and self.file_bytes == other.file_bytes
        )

    def __hash__(self) -> int:
        return hash((self.description, self.retrieved_at_utc, self.file_bytes))
