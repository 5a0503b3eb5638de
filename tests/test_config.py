"""Tests for vault.config (VaultConfig)."""
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from envkeys.vault.config import DEFAULT_HEADER, VaultConfig


class TestVaultConfig:
    def test_defaults(self):
        config = VaultConfig()
        assert config.home == Path("~/.envkeys").expanduser()
        assert config.key_path.name == "master.key"
        assert config.store_path.name == "credentials.enc"
        assert config.header == DEFAULT_HEADER

    def test_paths_follow_home(self, tmp_path):
        config = VaultConfig(home=tmp_path, key_filename="k", store_filename="s")
        assert config.key_path == tmp_path / "k"
        assert config.store_path == tmp_path / "s"

    @pytest.mark.parametrize("name", ["", "..", "sub/file"])
    def test_rejects_bad_file_names(self, tmp_path, name):
        with pytest.raises(PydanticValidationError):
            VaultConfig(home=tmp_path, key_filename=name)

    def test_rejects_non_comment_header(self, tmp_path):
        with pytest.raises(PydanticValidationError):
            VaultConfig(home=tmp_path, header=("not a comment",))

    def test_frozen(self, tmp_path):
        config = VaultConfig(home=tmp_path)
        with pytest.raises(PydanticValidationError):
            config.home = Path("/elsewhere")

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ENVKEYS_HOME", str(tmp_path))
        monkeypatch.setenv("ENVKEYS_KEY_FILE", "alt.key")
        monkeypatch.delenv("ENVKEYS_STORE_FILE", raising=False)
        config = VaultConfig.from_env()
        assert config.key_path == tmp_path / "alt.key"
        assert config.store_path == tmp_path / "credentials.enc"
