import io
import zipfile
from pathlib import Path
from typing import Dict

from ..domain.errors import InvalidArgumentError
from ..utils.workdir import scoped_directory

SEARCH_DIRECTORY_PREFIX = "PackageFileContentsSearch-"


def _normalize_slashes(path: str) -> str:
    return path.replace("\\", "/")


def extract_matching_files(package_bytes: bytes, search_pattern: str, work_root: Path) -> Dict[str, bytes]:
    """
    extract a package archive and read every file whose path contains search_pattern.

    the archive is unpacked into a directory of its own under work_root which is
    deleted before returning, whether or not extraction succeeded.

    args:
        package_bytes: raw .nupkg (zip) contents
        search_pattern: case-insensitive substring of the wanted paths, either slash style
        work_root: parent of the scratch directory

    returns:
        map of '/'-separated path inside the archive to file contents
    """
    if package_bytes is None:
        raise InvalidArgumentError("package has no file bytes")
    if search_pattern is None:
        raise InvalidArgumentError("search_pattern must be specified")

    pattern = _normalize_slashes(search_pattern).casefold()

    with scoped_directory(work_root, SEARCH_DIRECTORY_PREFIX) as directory:
        with zipfile.ZipFile(io.BytesIO(package_bytes)) as zf:
            zf.extractall(directory)

        result = {}
        for path in sorted(directory.rglob("*")):
            if not path.is_file():
                continue
            relative = _normalize_slashes(path.relative_to(directory).as_posix())
            if pattern in relative.casefold():
                result[relative] = path.read_bytes()
        return result


def decode_contents(contents: Dict[str, bytes], encoding: str = "utf-8") -> Dict[str, str]:
    # binary members (dlls and the like) decode with U+FFFD in place of invalid bytes
    return {name: data.decode(encoding, errors="replace") for name, data in contents.items()}
