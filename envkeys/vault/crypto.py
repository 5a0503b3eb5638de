"""
Vault Crypto Core — Encryption and decryption of the serialized credential set.

Container format:
    [magic "EKV1" 4B][salt 16B][nonce 12B][encrypted_payload + GCM tag 16B]

The AES-256 key is derived per file with PBKDF2-HMAC-SHA256 from the master
key text and the embedded random salt. Every parameter is a module constant
and shared by encrypt and decrypt; never compute them ad hoc.

Security Note:
    Never log plaintext or ciphertext values.
    Nonces and salts are random; collision probability negligible.
"""
import os
import logging
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DecryptionError, PersistError
from .files import atomic_write

logger = logging.getLogger("envkeys.vault")

MAGIC = b"EKV1"
SALT_SIZE = 16  # 128-bit PBKDF2 salt
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256
KDF_ITERATIONS = 100_000
KDF_HASH = hashes.SHA256

HEADER_SIZE = len(MAGIC) + SALT_SIZE + NONCE_SIZE
MIN_CIPHERTEXT_SIZE = HEADER_SIZE + TAG_SIZE


def derive_key(master_key: bytes, salt: bytes) -> bytes:
    """Derive the 32-byte AES key for one container.

    Args:
        master_key: Master key text (base64 bytes) used as KDF password.
        salt: Per-container random salt.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=KDF_HASH(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(master_key)


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """Encrypt ``plaintext`` under the master ``key``.

    Returns:
        Container bytes (never empty).
    """
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    cipher = AESGCM(derive_key(key, salt))
    ct = cipher.encrypt(nonce, bytes(plaintext), MAGIC)
    blob = MAGIC + salt + nonce + ct
    if len(blob) < MIN_CIPHERTEXT_SIZE:
        raise PersistError("Encryption produced a truncated container")
    return blob


def decrypt(ciphertext: bytes, key: bytes) -> bytes:
    """Decrypt a container produced by ``encrypt``.

    Raises:
        DecryptionError: Wrong key, corrupted or truncated ciphertext, or a
            container written with different parameters.
    """
    if len(ciphertext) < MIN_CIPHERTEXT_SIZE:
        raise DecryptionError(
            f"Ciphertext too short: {len(ciphertext)} bytes "
            f"(minimum {MIN_CIPHERTEXT_SIZE})"
        )
    if not ciphertext.startswith(MAGIC):
        raise DecryptionError("Ciphertext has unknown format")
    salt = ciphertext[len(MAGIC):len(MAGIC) + SALT_SIZE]
    nonce = ciphertext[len(MAGIC) + SALT_SIZE:HEADER_SIZE]
    ct = ciphertext[HEADER_SIZE:]
    cipher = AESGCM(derive_key(key, salt))
    try:
        return cipher.decrypt(nonce, ct, MAGIC)
    except InvalidTag as err:
        raise DecryptionError(
            "Cannot decrypt credential store (wrong key or corrupted data)"
        ) from err


def read_ciphertext(path: Path) -> bytes:
    """Return the raw store bytes, or ``b""`` if the file is missing."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return b""
    except OSError as err:
        raise DecryptionError(f"Cannot read credential store {path}: {err}") from err


def decrypt_file(path: Path, key: bytes, empty: bytes = b"") -> bytes:
    """Decrypt the store at ``path``.

    A missing or empty file is the bootstrap case and yields ``empty``
    (the serialization of an empty credential set) instead of an error.
    """
    ciphertext = read_ciphertext(path)
    if not ciphertext:
        logger.debug("No credential store at %s; starting empty", path)
        return empty
    return decrypt(ciphertext, key)


def encrypt_to_file(plaintext: bytes, key: bytes, path: Path) -> None:
    """Encrypt ``plaintext`` and atomically replace ``path`` with the result.

    The container is staged in a private file beside ``path`` and only
    renamed into place once it is complete. ``path`` is untouched on error.

    Raises:
        PersistError: If the encrypted store cannot be written.
    """
    blob = encrypt(plaintext, key)
    atomic_write(path, blob)
    logger.debug("Credential store written: %s (%d bytes)", path, len(blob))
