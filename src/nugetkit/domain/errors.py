from typing import Optional

class NuGetKitError(Exception):
    """base class for exceptions in nugetkit."""
    pass

class InvalidArgumentError(NuGetKitError, ValueError):
    """raised when a required argument is missing or empty."""
    pass

class MalformedVersionError(NuGetKitError):
    """raised when a version string has no parseable numeric part."""
    def __init__(self, version: Optional[str]):
        self.version = version
        super().__init__(f"Version '{version}' is not a dotted sequence of numbers")

class ConflictingVersionsError(NuGetKitError):
    """raised when two sources disagree on the latest version of a package."""
    def __init__(self, message: str, first_version: str, second_version: str):
        self.first_version = first_version
        self.second_version = second_version
        super().__init__(message)

class UnsupportedVersionComparisonError(ConflictingVersionsError):
    """raised when two versions only differ by their pre-release suffix."""
    pass

class PackageNotFoundError(NuGetKitError):
    """raised when no version of a package can be found in any source."""
    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(
            "Could not find a version for the package (package ID may be incorrect "
            f"or containing source may be offline); ID: {package_id}"
        )

class CollaboratorError(NuGetKitError):
    """raised when nuget (exe or service) reports a failure."""
    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)

class UnsupportedProtocolError(CollaboratorError):
    """raised for repository protocol versions a binding cannot talk to."""
    def __init__(self, protocol_version):
        self.protocol_version = protocol_version
        super().__init__(f"Version: {protocol_version} is not currently supported.")

class NuSpecError(NuGetKitError):
    """base class for nuspec parsing failures."""
    pass

class MissingMetadataError(NuSpecError):
    pass

class MultipleMetadataError(NuSpecError):
    pass

class MissingVersionError(NuSpecError):
    pass

class MultipleVersionError(NuSpecError):
    pass

class NotParseableError(NuSpecError):
    pass
