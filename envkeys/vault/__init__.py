"""Credential Vault — Named credentials encrypted at rest under one master key.

Security Note (Threat Model):
    Credentials are decrypted in process memory for the duration of a single
    store operation. Plaintext is staged in scratch buffers that are zeroed
    before the operation returns, but transient Python ``str``/``bytes``
    copies may survive until garbage collection, and a memory dump of the
    running process could expose them. This is an accepted limitation;
    mitigation requires OS-level memory protection which is out of scope.
"""

from .store import CredentialStore, Stage
from .keys import MasterKeyManager, KeyRotation, generate_master_key
from .config import VaultConfig
from .codec import CredentialRecord, CredentialSet
from .scratch import ScratchBuffer, ScratchSpace
from .environ import use, export_lines, child_env, run
from .exceptions import (
    VaultError,
    ValidationError,
    NotFoundError,
    KeyAccessError,
    DecryptionError,
    PersistError,
    FilePermissionError,
)

__all__ = [
    "CredentialStore",
    "Stage",
    "MasterKeyManager",
    "KeyRotation",
    "generate_master_key",
    "VaultConfig",
    "CredentialRecord",
    "CredentialSet",
    "ScratchBuffer",
    "ScratchSpace",
    "use",
    "export_lines",
    "child_env",
    "run",
    "VaultError",
    "ValidationError",
    "NotFoundError",
    "KeyAccessError",
    "DecryptionError",
    "PersistError",
    "FilePermissionError",
]
