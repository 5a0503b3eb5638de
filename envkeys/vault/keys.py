"""
Master Key Manager — Generation, loading, backup and rotation of the master key.

The key file holds a base64-encoded 32-byte random key and nothing else.
Exactly one key is active. Rotation keeps the previous key as a timestamped
backup next to the key file; backups are never deleted automatically.

Security Note:
    Never log key material. Only log file names and operations.
"""
import base64
import binascii
import secrets
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import KeyAccessError, PersistError
from .files import atomic_write, backup_file, set_private_mode, timestamp

logger = logging.getLogger("envkeys.vault")

KEY_LENGTH = 32  # raw bytes before base64


def generate_master_key() -> bytes:
    """Generate a random 32-byte master key and return it base64-encoded.

    Returns:
        Base64 key as ASCII bytes.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH))


def validate_master_key(key: bytes) -> bytes:
    """Check that ``key`` is base64 of exactly 32 bytes.

    Returns:
        The key with surrounding whitespace removed.

    Raises:
        KeyAccessError: If the key is malformed.
    """
    key = key.strip()
    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as err:
        raise KeyAccessError("Master key is not valid base64") from err
    if len(raw) != KEY_LENGTH:
        raise KeyAccessError(
            f"Master key must decode to exactly {KEY_LENGTH} bytes, got {len(raw)}"
        )
    return key


@dataclass(frozen=True)
class KeyRotation:
    """Old and new key material handed to the store during rotation."""

    old_key: bytes
    new_key: bytes
    backup_path: Path

    def __repr__(self) -> str:
        return f"KeyRotation(backup_path={self.backup_path!r})"


class MasterKeyManager:
    """Owns the single master key file."""

    def __init__(self, key_path: Path):
        self._path = Path(key_path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file() and self._path.stat().st_size > 0

    def ensure_key_exists(self) -> bool:
        """Create the master key if none is persisted yet.

        Never overwrites an existing key.

        Returns:
            True if a new key was created.

        Raises:
            KeyAccessError: If the key file cannot be written.
            FilePermissionError: If 0600 cannot be applied to the new key.
        """
        if self.exists():
            return False
        self._install(generate_master_key(), fatal_chmod=True)
        logger.info("Created new master key at %s", self._path)
        return True

    def load(self) -> bytes:
        """Read the active master key.

        Raises:
            KeyAccessError: If the key is missing, unreadable or malformed.
        """
        try:
            data = self._path.read_bytes()
        except OSError as err:
            raise KeyAccessError(f"Cannot read master key {self._path}: {err}") from err
        key = validate_master_key(data)
        set_private_mode(self._path)
        return key

    def backup(self, stamp: Optional[str] = None) -> Optional[Path]:
        """Copy the key file to a timestamped, owner-only backup."""
        return backup_file(self._path, stamp)

    def rotate(self) -> KeyRotation:
        """Back up the current key and install a freshly generated one.

        The caller re-encrypts the store with ``new_key`` and, if that fails,
        calls ``restore()`` so the store stays readable under ``old_key``.

        Raises:
            KeyAccessError: If the current key cannot be read or the new key
                cannot be written.
        """
        old_key = self.load()
        try:
            backup_path = self.backup()
        except PersistError as err:
            raise KeyAccessError(f"Cannot back up master key: {err}") from err
        new_key = generate_master_key()
        self._install(new_key)
        logger.info("Master key rotated; previous key kept at %s", backup_path.name)
        return KeyRotation(old_key=old_key, new_key=new_key, backup_path=backup_path)

    def restore(self, rotation: KeyRotation) -> None:
        """Reinstall the pre-rotation key as the active key."""
        self._install(rotation.old_key)
        logger.warning("Master key restored from before rotation")

    def replace(self, stamp: Optional[str] = None) -> Optional[Path]:
        """Back up the current key (if any) and install a brand new one.

        Returns:
            The backup path, or None if there was no key.
        """
        stamp = stamp or timestamp()
        try:
            backup_path = self.backup(stamp)
        except PersistError as err:
            raise KeyAccessError(f"Cannot back up master key: {err}") from err
        self._install(generate_master_key(), fatal_chmod=True)
        logger.info("Installed fresh master key at %s", self._path)
        return backup_path

    def _install(self, key: bytes, fatal_chmod: bool = False) -> None:
        try:
            atomic_write(self._path, key, fatal_chmod=fatal_chmod)
        except PersistError as err:
            raise KeyAccessError(f"Cannot write master key {self._path}: {err}") from err
