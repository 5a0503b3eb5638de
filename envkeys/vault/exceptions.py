"""
Vault Exceptions — Error taxonomy for the credential store.

Every error raised by the vault derives from ``VaultError`` so callers can
catch the whole family at once. Where a builtin exception already describes
the failure, the vault error also inherits from it.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class ValidationError(VaultError, ValueError):
    """Empty or malformed credential name or value."""


class NotFoundError(VaultError, KeyError):
    """One or more requested credentials are absent."""

    def __init__(self, names):
        if isinstance(names, str):
            names = [names]
        self.names = list(names)
        super().__init__(f"Credential(s) not found: {', '.join(self.names)}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class KeyAccessError(VaultError):
    """The master key could not be read or written."""


class DecryptionError(VaultError):
    """Ciphertext cannot be decrypted under the current key.

    Wrong key and corrupted ciphertext are intentionally reported the same.
    """


class PersistError(VaultError):
    """Atomic replacement of a vault file failed."""


class FilePermissionError(VaultError, PermissionError):
    """Restrictive (owner-only) permissions could not be applied."""
