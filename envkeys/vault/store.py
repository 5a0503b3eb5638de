"""
CredentialStore — Encrypted credential storage backed by two local files.

Provides the public API for the vault:
- ``list()`` — credential names, never values
- ``add(name, value)`` / ``remove(name)`` — mutate and persist
- ``get(name)`` / ``get_many(names)`` / ``export_all()`` — read values
- ``rotate_key()`` — re-encrypt everything under a fresh master key
- ``reset()`` — back up both files and start over empty
- ``debug()`` — file diagnostics without any secret material

Every call runs the same linear protocol::

    LOAD -> MUTATE -> PERSIST -> CLEANUP

``LOAD`` decrypts the store into scratch space, ``MUTATE`` applies at most one
logical change, ``PERSIST`` (mutating calls only) re-encrypts and atomically
replaces the store file, and ``CLEANUP`` wipes all plaintext whatever
happened before.

Security Note:
    Never log plaintext or ciphertext values. Only log credential names,
    operations and file paths. There is no inter-process lock: two
    concurrent mutating invocations can lose an update (last write wins).
"""
import enum
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional, TypeVar

from . import codec, crypto
from .codec import CredentialSet
from .config import VaultConfig
from .exceptions import (
    DecryptionError,
    KeyAccessError,
    NotFoundError,
    PersistError,
    VaultError,
)
from .files import atomic_write, backup_file, file_mode, list_backups, timestamp
from .keys import MasterKeyManager
from .scratch import ScratchSpace

logger = logging.getLogger("envkeys.vault")

T = TypeVar("T")


class Stage(enum.Enum):
    LOAD = "load"
    MUTATE = "mutate"
    PERSIST = "persist"
    CLEANUP = "cleanup"


class CredentialStore:
    """Encrypted local store of named credentials.

    All file locations come from ``config``; nothing is process-global, so
    separate instances pointed at separate directories are fully isolated.
    """

    def __init__(self, config: Optional[VaultConfig] = None):
        self._config = config or VaultConfig.from_env()
        self._keys = MasterKeyManager(self._config.key_path)
        self.stage: Optional[Stage] = None

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def keys(self) -> MasterKeyManager:
        return self._keys

    # ------------------------------------------------------------------
    # Protocol helpers
    # ------------------------------------------------------------------

    def _empty(self) -> CredentialSet:
        return codec.empty_set(self._config.header)

    def _store_exists(self) -> bool:
        path = self._config.store_path
        return path.is_file() and path.stat().st_size > 0

    def _active_key(self) -> bytes:
        """Return the master key, creating it on first use.

        Raises:
            KeyAccessError: If a store exists but its key has gone missing.
        """
        if not self._keys.exists():
            if self._store_exists():
                raise KeyAccessError(
                    f"Master key {self._keys.path} is missing but the "
                    f"credential store {self._config.store_path} exists"
                )
            self._keys.ensure_key_exists()
        return self._keys.load()

    def _load(self, key: bytes, scratch: ScratchSpace) -> CredentialSet:
        self.stage = Stage.LOAD
        empty = codec.serialize(self._empty())
        plain = scratch.allocate(
            crypto.decrypt_file(self._config.store_path, key, empty=empty)
        )
        cs = codec.parse(plain.view())
        if not cs.header:
            cs.header = list(self._config.header)
        return cs

    def _persist(self, cs: CredentialSet, key: bytes, scratch: ScratchSpace) -> None:
        self.stage = Stage.PERSIST
        plain = scratch.allocate(codec.serialize(cs))
        crypto.encrypt_to_file(plain.view(), key, self._config.store_path)

    def _transaction(
        self,
        mutate: Callable[[CredentialSet], T],
        persist: bool = False,
    ) -> T:
        """Run one LOAD -> MUTATE -> PERSIST -> CLEANUP cycle."""
        cs: Optional[CredentialSet] = None
        with ScratchSpace() as scratch:
            try:
                key = self._active_key()
                cs = self._load(key, scratch)
                self.stage = Stage.MUTATE
                result = mutate(cs)
                if persist:
                    self._persist(cs, key, scratch)
                return result
            finally:
                self.stage = Stage.CLEANUP
                if cs is not None:
                    cs.records.clear()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add(self, name: str, value: str) -> bool:
        """Insert or update a credential and persist the store.

        Args:
            name: Credential name (letters, digits, underscore).
            value: Non-empty secret value.

        Returns:
            True if the credential was inserted, False if it was updated
            in place.

        Raises:
            ValidationError: If name or value is empty or malformed.
        """
        codec.validate_name(name)
        codec.validate_value(value)
        inserted = self._transaction(
            lambda cs: codec.upsert(cs, name, value), persist=True,
        )
        logger.debug("Vault %s: name=%s", "add" if inserted else "update", name)
        return inserted

    def remove(self, name: str) -> None:
        """Delete a credential and persist the store.

        Raises:
            NotFoundError: If ``name`` is not stored; the store is unchanged.
        """
        def _delete(cs: CredentialSet) -> None:
            if not codec.delete(cs, name):
                raise NotFoundError(name)

        self._transaction(_delete, persist=True)
        logger.debug("Vault remove: name=%s", name)

    def get(self, name: str) -> str:
        """Return the value of one credential.

        Raises:
            NotFoundError: If ``name`` is not stored.
        """
        def _find(cs: CredentialSet) -> str:
            record = codec.find(cs, name)
            if record is None:
                raise NotFoundError(name)
            return record.value

        return self._transaction(_find)

    def get_many(self, names: Iterable[str]) -> dict[str, str]:
        """Return values for several credentials, all or nothing.

        Raises:
            NotFoundError: Listing every requested name that is absent.
        """
        names = list(dict.fromkeys(names))

        def _collect(cs: CredentialSet) -> dict[str, str]:
            found = {}
            missing = []
            for name in names:
                record = codec.find(cs, name)
                if record is None:
                    missing.append(name)
                else:
                    found[name] = record.value
            if missing:
                found.clear()
                raise NotFoundError(missing)
            return found

        return self._transaction(_collect)

    def export_all(self) -> list[tuple[str, str]]:
        """Return every ``(name, value)`` pair in store order."""
        return self._transaction(lambda cs: cs.items())

    def rotate_key(self) -> Path:
        """Re-encrypt the store under a freshly generated master key.

        The previous key is kept as a timestamped backup. If re-encryption
        fails the previous key is reinstated, so the store stays readable
        exactly as before.

        Returns:
            Path of the previous key's backup.
        """
        with ScratchSpace() as scratch:
            try:
                key = self._active_key()
                self.stage = Stage.LOAD
                empty = codec.serialize(self._empty())
                plain = scratch.allocate(
                    crypto.decrypt_file(self._config.store_path, key, empty=empty)
                )
                self.stage = Stage.MUTATE
                rotation = self._keys.rotate()
                self.stage = Stage.PERSIST
                try:
                    crypto.encrypt_to_file(
                        plain.view(), rotation.new_key, self._config.store_path,
                    )
                except Exception as err:
                    logger.error(
                        "Key rotation failed, restoring previous key from %s: %s",
                        rotation.backup_path, err,
                    )
                    try:
                        self._keys.restore(rotation)
                    except KeyAccessError as restore_err:
                        logger.error(
                            "Could not restore previous master key; reinstate "
                            "%s as %s manually: %s",
                            rotation.backup_path, self._keys.path, restore_err,
                        )
                        raise err from restore_err
                    raise
            finally:
                self.stage = Stage.CLEANUP
        logger.info("Credential store re-encrypted under new master key")
        return rotation.backup_path

    def reset(self) -> list[Path]:
        """Back up the store and key, then start with a fresh key and empty store.

        Backups share one timestamp suffix and are never deleted.

        Returns:
            Paths of the backups that were made.
        """
        stamp = timestamp()
        store_path = self._config.store_path
        backups = []
        store_backup = backup_file(store_path, stamp)
        if store_backup is not None:
            backups.append(store_backup)
        key_backup = self._keys.replace(stamp)
        if key_backup is not None:
            backups.append(key_backup)
        with ScratchSpace() as scratch:
            try:
                self.stage = Stage.PERSIST
                self._persist(self._empty(), self._keys.load(), scratch)
            except VaultError:
                if key_backup is not None:
                    logger.error("Reset failed, reinstating previous master key")
                    atomic_write(self._keys.path, key_backup.read_bytes())
                raise
            finally:
                self.stage = Stage.CLEANUP
        logger.info("Credential store reset (%d backup(s))", len(backups))
        return backups

    def debug(self) -> dict[str, Any]:
        """Describe the store files without exposing any secret material."""
        key_path = self._keys.path
        store_path = self._config.store_path
        info: dict[str, Any] = {
            "home": str(self._config.home),
            "key_path": str(key_path),
            "key_exists": key_path.exists(),
            "key_mode": file_mode(key_path),
            "key_backups": len(list_backups(key_path)),
            "store_path": str(store_path),
            "store_exists": store_path.exists(),
            "store_mode": file_mode(store_path),
            "store_size": store_path.stat().st_size if store_path.exists() else 0,
            "store_backups": len(list_backups(store_path)),
            "decryptable": False,
            "records": 0,
            "error": None,
        }
        if not key_path.exists():
            info["decryptable"] = not info["store_size"]
            return info
        try:
            key = self._keys.load()
            with ScratchSpace() as scratch:
                plain = scratch.allocate(
                    crypto.decrypt_file(store_path, key, empty=b"")
                )
                info["records"] = len(codec.parse(plain.view()))
            info["decryptable"] = True
        except (KeyAccessError, DecryptionError, PersistError) as err:
            info["error"] = f"{type(err).__name__}: {err}"
        return info

    # defined last: it shadows the builtin ``list`` in annotations above
    def list(self) -> list[str]:
        """Return credential names in store order. Values are never exposed."""
        return self._transaction(lambda cs: cs.names())
