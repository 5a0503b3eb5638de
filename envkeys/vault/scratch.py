"""
Secure Scratch Space — Short-lived plaintext buffers that are always wiped.

Decrypted data is copied into ``bytearray`` buffers owned by a
``ScratchSpace``. Leaving the ``with`` block zeroes every buffer, whether
the block finished normally or raised.

Security Note:
    Python may keep transient ``bytes``/``str`` copies (e.g. the return value
    of a decrypt call or a decoded value) until garbage collection. Only the
    scratch buffers themselves are guaranteed zeroed. This is an accepted
    limitation (see threat model in ``__init__.py``).
"""
import logging
from typing import Optional

logger = logging.getLogger("envkeys.vault")


class ScratchBuffer:
    """Mutable plaintext buffer that can be zeroed in place."""

    __slots__ = ("_data", "_wiped")

    def __init__(self, data: bytes = b""):
        self._data = bytearray(data)
        self._wiped = False
        # Zero the caller's copy too when it is mutable
        if isinstance(data, bytearray):
            data[:] = bytes(len(data))

    def view(self) -> memoryview:
        """Return a read-only view of the live buffer."""
        if self._wiped:
            raise RuntimeError("Scratch buffer already wiped")
        return memoryview(self._data).toreadonly()

    def tobytes(self) -> bytes:
        return self.view().tobytes()

    def wipe(self) -> None:
        """Overwrite the buffer with zeros."""
        if self._wiped:
            return
        # same-length assignment: allowed even while a memoryview is exported
        self._data[:] = bytes(len(self._data))
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __len__(self) -> int:
        return 0 if self._wiped else len(self._data)

    def __enter__(self) -> "ScratchBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"<ScratchBuffer len={len(self._data)} wiped={self._wiped}>"


class ScratchSpace:
    """Owner of every plaintext buffer used by one store operation.

    Usage::

        with ScratchSpace() as scratch:
            buf = scratch.allocate(decrypt(blob, key))
            ...
        # every buffer is wiped here
    """

    def __init__(self):
        self._buffers: list[ScratchBuffer] = []

    def allocate(self, data: Optional[bytes] = None) -> ScratchBuffer:
        """Copy ``data`` into a new tracked buffer."""
        buf = ScratchBuffer(data or b"")
        self._buffers.append(buf)
        return buf

    def wipe(self) -> None:
        """Wipe all buffers handed out so far."""
        for buf in self._buffers:
            buf.wipe()
        logger.debug("Scratch space wiped: %d buffer(s)", len(self._buffers))
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)

    def __enter__(self) -> "ScratchSpace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()
