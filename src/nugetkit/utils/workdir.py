import logging
import secrets
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Set

logger = logging.getLogger(__name__)


def timestamp_name(prefix: str, now: datetime = None) -> str:
    """'<prefix>yyyy-MM-dd--HH-mm-ss--ffff' (ffff = ten-thousandths of a second)."""
    now = now or datetime.now()
    return f"{prefix}{now.strftime('%Y-%m-%d--%H-%M-%S')}--{now.microsecond // 100:04d}"


def create_unique_directory(parent: Path, prefix: str) -> Path:
    """
    create a new, empty directory under parent named after the current time.

    falls back to a random suffix when the time-based name is taken.

    raises:
        FileExistsError: if the fallback name is taken as well
    """
    parent.mkdir(parents=True, exist_ok=True)
    path = parent / timestamp_name(prefix)
    try:
        path.mkdir()
    except FileExistsError:
        path = parent / f"{path.name}-{secrets.token_hex(4)}"
        path.mkdir()
    return path


def remove_directory(path: Path) -> None:
    """delete a directory tree; failures are logged, never raised."""
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning(f"could not remove directory {path}: {e}")


@contextmanager
def scoped_directory(parent: Path, prefix: str) -> Iterator[Path]:
    """a uniquely named directory that is removed however the block exits."""
    path = create_unique_directory(parent, prefix)
    try:
        yield path
    finally:
        remove_directory(path)


def snapshot_files(directory: Path) -> Set[Path]:
    """every file below directory, recursively."""
    return {p for p in directory.rglob("*") if p.is_file()}
