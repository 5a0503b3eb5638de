"""Tests for vault.environ (use / export / run helpers)."""
import shlex
import sys

import pytest

from envkeys.vault import crypto, environ
from envkeys.vault.exceptions import NotFoundError, ValidationError


class TestUse:
    def test_single_binding(self, populated_store):
        assert environ.use(populated_store, "GITHUB_TOKEN") == {"GITHUB_TOKEN": "ghp_abc"}

    def test_missing(self, populated_store):
        with pytest.raises(NotFoundError):
            environ.use(populated_store, "MISSING")


class TestExportLines:
    def test_lines_are_shell_quoted(self, store):
        store.add("PLAIN", "abc")
        store.add("TRICKY", "it's $HOME")
        lines = environ.export_lines(store)
        assert lines[0] == "export PLAIN=abc"
        assert shlex.split(lines[1]) == ["export", "TRICKY=it's $HOME"]

    def test_empty_store(self, store):
        assert environ.export_lines(store) == []


class TestChildEnv:
    def test_overlays_base(self, populated_store):
        env = environ.child_env(populated_store, ["OPENAI_API_KEY"], base={"PATH": "/bin"})
        assert env == {"PATH": "/bin", "OPENAI_API_KEY": "sk-test-1"}

    def test_defaults_to_os_environ(self, populated_store, monkeypatch):
        monkeypatch.setenv("SOME_VAR", "present")
        env = environ.child_env(populated_store, ["GITHUB_TOKEN"])
        assert env["SOME_VAR"] == "present"
        assert env["GITHUB_TOKEN"] == "ghp_abc"

    def test_all_or_nothing(self, populated_store):
        with pytest.raises(NotFoundError) as exc:
            environ.child_env(populated_store, ["OPENAI_API_KEY", "NOPE"], base={})
        assert exc.value.names == ["NOPE"]

    def test_value_with_nul_is_refused(self, store, config):
        """A NUL read back from the store is reported by name, not passed to exec."""
        store.add("GOOD", "fine")
        key = config.key_path.read_bytes()
        crypto.encrypt_to_file(
            b'GOOD="fine"\nBAD="a\\u0000b"\n', key, config.store_path,
        )
        assert store.get("BAD") == "a\x00b"
        with pytest.raises(ValidationError) as exc:
            environ.child_env(store, ["GOOD", "BAD"], base={})
        assert "BAD" in str(exc.value)
        assert "GOOD" not in str(exc.value)


class TestRun:
    def test_child_sees_credentials_and_exit_status_is_forwarded(self, populated_store):
        script = (
            "import os, sys; "
            "sys.exit(7 if os.environ.get('OPENAI_API_KEY') == 'sk-test-1' else 1)"
        )
        status = environ.run(
            populated_store, ["OPENAI_API_KEY"], [sys.executable, "-c", script],
        )
        assert status == 7

    def test_missing_credential_does_not_start_command(self, populated_store, tmp_path):
        marker = tmp_path / "ran"
        command = [sys.executable, "-c", f"open({str(marker)!r}, 'w').close()"]
        with pytest.raises(NotFoundError):
            environ.run(populated_store, ["MISSING"], command)
        assert not marker.exists()

    def test_empty_command(self, populated_store):
        with pytest.raises(ValueError):
            environ.run(populated_store, ["OPENAI_API_KEY"], [])
