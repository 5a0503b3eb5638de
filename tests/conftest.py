import pytest

from envkeys.vault import CredentialStore, VaultConfig


@pytest.fixture
def config(tmp_path):
    """VaultConfig pointing at an isolated temporary directory."""
    return VaultConfig(home=tmp_path / "vault")


@pytest.fixture
def store(config):
    """Fresh CredentialStore with no files on disk yet."""
    return CredentialStore(config)


@pytest.fixture
def populated_store(store):
    """Store holding three credentials in a known order."""
    store.add("OPENAI_API_KEY", "sk-test-1")
    store.add("GITHUB_TOKEN", "ghp_abc")
    store.add("ANTHROPIC_API_KEY", "sk-ant-2")
    return store
