"""Tests for vault.scratch (Secure Scratch Space)."""
import pytest

from envkeys.vault.scratch import ScratchBuffer, ScratchSpace


class TestScratchBuffer:
    def test_view_exposes_data(self):
        buf = ScratchBuffer(b"secret")
        assert buf.tobytes() == b"secret"
        assert len(buf) == 6

    def test_view_is_read_only(self):
        buf = ScratchBuffer(b"secret")
        with pytest.raises(TypeError):
            buf.view()[0] = 0

    def test_wipe_zeroes_backing_store(self):
        buf = ScratchBuffer(b"secret")
        backing = buf._data
        buf.wipe()
        assert buf.wiped is True
        assert b"secret" not in bytes(backing)
        assert len(buf) == 0

    def test_wipe_is_idempotent(self):
        buf = ScratchBuffer(b"secret")
        buf.wipe()
        buf.wipe()
        assert buf.wiped

    def test_view_after_wipe_fails(self):
        buf = ScratchBuffer(b"secret")
        buf.wipe()
        with pytest.raises(RuntimeError):
            buf.view()

    def test_zeroes_mutable_source(self):
        source = bytearray(b"secret")
        buf = ScratchBuffer(source)
        assert source == bytearray(6)
        assert buf.tobytes() == b"secret"

    def test_context_manager(self):
        with ScratchBuffer(b"secret") as buf:
            assert buf.tobytes() == b"secret"
        assert buf.wiped

    def test_repr_hides_content(self):
        assert "secret" not in repr(ScratchBuffer(b"secret"))


class TestScratchSpace:
    def test_wipes_all_buffers_on_exit(self):
        with ScratchSpace() as scratch:
            first = scratch.allocate(b"one")
            second = scratch.allocate(b"two")
            assert len(scratch) == 2
        assert first.wiped and second.wiped
        assert len(scratch) == 0

    def test_wipes_on_error(self):
        with pytest.raises(ValueError):
            with ScratchSpace() as scratch:
                buf = scratch.allocate(b"plaintext")
                raise ValueError("boom")
        assert buf.wiped

    def test_allocate_empty(self):
        with ScratchSpace() as scratch:
            buf = scratch.allocate()
            assert len(buf) == 0
