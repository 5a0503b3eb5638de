"""envkeys — API keys encrypted at rest, delivered as environment variables."""
from .version import __version__
from .vault import CredentialStore, VaultConfig

__all__ = ["__version__", "CredentialStore", "VaultConfig"]
