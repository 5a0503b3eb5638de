"""
Vault Files — Owner-only, atomic file primitives shared by key and store.

Every vault file is written by staging the full content in a private
temporary file in the same directory as the target, then renaming it over
the target. Readers never observe a half-written file.
"""
import os
import shutil
import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import FilePermissionError, PersistError

logger = logging.getLogger("envkeys.vault")

FILE_MODE = 0o600
DIR_MODE = 0o700
BACKUP_SUFFIX = ".bak"


def ensure_private_dir(path: Path) -> None:
    """Create ``path`` (owner-only) if it does not exist yet."""
    if path.is_dir():
        return
    try:
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as err:
        raise PersistError(f"Cannot create vault directory {path}: {err}") from err


def set_private_mode(path: Path, fatal: bool = False) -> None:
    """Apply 0600 to ``path``.

    Args:
        path: File to restrict.
        fatal: Raise ``FilePermissionError`` on failure instead of warning.
    """
    try:
        os.chmod(path, FILE_MODE)
    except OSError as err:
        if fatal:
            raise FilePermissionError(
                f"Cannot restrict permissions on {path}: {err}"
            ) from err
        logger.warning("Could not set 0600 on %s: %s", path, err)


def atomic_write(path: Path, data: bytes, fatal_chmod: bool = False) -> None:
    """Write ``data`` to ``path`` through a same-directory staging file.

    The staged file is created with 0600, flushed, fsynced and checked to
    hold exactly ``len(data)`` bytes before it replaces ``path``. On any
    failure the staging file is removed and ``path`` is left as it was.

    Raises:
        PersistError: If the data is empty or the replace fails.
        FilePermissionError: If ``fatal_chmod`` and 0600 cannot be applied.
    """
    if not data:
        raise PersistError(f"Refusing to write empty content to {path}")
    ensure_private_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
    )
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        set_private_mode(tmp, fatal=fatal_chmod)
        if tmp.stat().st_size != len(data):
            raise PersistError(f"Staged write for {path} is incomplete")
        os.replace(tmp, path)
    except (FilePermissionError, PersistError):
        tmp.unlink(missing_ok=True)
        raise
    except OSError as err:
        tmp.unlink(missing_ok=True)
        raise PersistError(f"Cannot replace {path}: {err}") from err
    logger.debug("Atomically wrote %s", path)


def timestamp() -> str:
    """UTC timestamp used as backup suffix, unique to the microsecond."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")


def backup_file(path: Path, stamp: Optional[str] = None) -> Optional[Path]:
    """Copy ``path`` to ``<path>.<stamp>.bak`` with owner-only permissions.

    Returns:
        The backup path, or None if ``path`` does not exist.

    Raises:
        PersistError: If the copy fails.
    """
    if not path.exists():
        return None
    stamp = stamp or timestamp()
    target = path.with_name(f"{path.name}.{stamp}{BACKUP_SUFFIX}")
    try:
        shutil.copy2(path, target)
    except OSError as err:
        raise PersistError(f"Cannot back up {path}: {err}") from err
    set_private_mode(target)
    logger.info("Backed up %s to %s", path.name, target.name)
    return target


def list_backups(path: Path) -> list[Path]:
    """Backups of ``path``, oldest first."""
    return sorted(path.parent.glob(f"{path.name}.*{BACKUP_SUFFIX}"))


def file_mode(path: Path) -> Optional[str]:
    """Octal permission string of ``path`` (e.g. ``"0o600"``), or None."""
    try:
        return oct(path.stat().st_mode & 0o777)
    except FileNotFoundError:
        return None
