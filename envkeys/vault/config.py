"""
Vault Configuration — File locations and validated settings.

The store lives in a single directory holding two files:
    <home>/master.key       base64-encoded 32-byte master key
    <home>/credentials.enc  encrypted credential set

``VaultConfig.from_env()`` reads optional overrides:
    ENVKEYS_HOME = <directory>
    ENVKEYS_KEY_FILE = <file name>
    ENVKEYS_STORE_FILE = <file name>

Security Note:
    Never log key material. Only log file paths.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("envkeys.vault")

DEFAULT_HOME = Path("~/.envkeys")
DEFAULT_KEY_FILENAME = "master.key"
DEFAULT_STORE_FILENAME = "credentials.enc"
DEFAULT_HEADER = (
    "# envkeys credential store",
    "# Format: NAME=\"VALUE\" (values are JSON string literals)",
)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    home: Path = Field(default=DEFAULT_HOME, validate_default=True)
    key_filename: str = Field(default=DEFAULT_KEY_FILENAME, min_length=1)
    store_filename: str = Field(default=DEFAULT_STORE_FILENAME, min_length=1)
    header: tuple[str, ...] = Field(default=DEFAULT_HEADER)

    model_config = {"frozen": True}

    @field_validator("home")
    @classmethod
    def expand_home(cls, v: Path) -> Path:
        """Expand ``~`` so every path derived from home is absolute-ish."""
        return Path(v).expanduser()

    @field_validator("key_filename", "store_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """File names must be bare names inside ``home``."""
        if os.sep in v or (os.altsep and os.altsep in v) or v in (".", ".."):
            raise ValueError(f"Invalid file name: {v!r}")
        return v

    @field_validator("header")
    @classmethod
    def validate_header(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Header lines must be comments so the codec skips them on read."""
        for line in v:
            if "\n" in line or not line.startswith("#"):
                raise ValueError(f"Header lines must be single '#' comments: {line!r}")
        return v

    @property
    def key_path(self) -> Path:
        return self.home / self.key_filename

    @property
    def store_path(self) -> Path:
        return self.home / self.store_filename

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        kwargs = {}
        home = os.environ.get("ENVKEYS_HOME")
        if home:
            kwargs["home"] = Path(home)
        key_file = os.environ.get("ENVKEYS_KEY_FILE")
        if key_file:
            kwargs["key_filename"] = key_file
        store_file = os.environ.get("ENVKEYS_STORE_FILE")
        if store_file:
            kwargs["store_filename"] = store_file
        config = cls(**kwargs)
        logger.debug("Vault config loaded: home=%s", config.home)
        return config
