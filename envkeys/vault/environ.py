"""
Environment helpers — Hand stored credentials to the calling process.

These are the library-level counterparts of the ``use``, ``export`` and
``run`` commands. Values are only ever returned as mappings or passed as a
child process environment; nothing is written to disk or echoed.
"""
import os
import shlex
import logging
import subprocess
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from .exceptions import ValidationError
from .store import CredentialStore

logger = logging.getLogger("envkeys.vault")


def use(store: CredentialStore, name: str) -> dict[str, str]:
    """Return the ``{name: value}`` binding for one credential."""
    return {name: store.get(name)}


def export_lines(store: CredentialStore) -> list[str]:
    """Render every credential as a shell ``export NAME=value`` line."""
    return [
        f"export {name}={shlex.quote(value)}"
        for name, value in store.export_all()
    ]


def child_env(
    store: CredentialStore,
    names: Iterable[str],
    base: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Build a child process environment holding the requested credentials.

    Args:
        store: Credential store to read from.
        names: Credentials to inject; all must exist.
        base: Starting environment (defaults to ``os.environ``).

    Raises:
        NotFoundError: Listing every requested name that is absent.
        ValidationError: If a stored value holds a NUL character, which no
            process environment can carry.
    """
    credentials = store.get_many(names)
    unusable = [name for name, value in credentials.items() if "\x00" in value]
    if unusable:
        credentials.clear()
        raise ValidationError(
            f"Credential(s) contain NUL and cannot be exported: {', '.join(unusable)}"
        )
    env = dict(os.environ if base is None else base)
    env.update(credentials)
    credentials.clear()
    return env


def run(
    store: CredentialStore,
    names: Iterable[str],
    command: Sequence[str],
    base: Optional[Mapping[str, str]] = None,
) -> int:
    """Run ``command`` with the requested credentials in its environment.

    The command is executed directly (no shell). Its exit status is returned
    unchanged. The prepared environment is dropped once the child exits.

    Raises:
        NotFoundError: If any requested credential is missing; the command
            is not started.
        ValueError: If ``command`` is empty.
    """
    if not command:
        raise ValueError("No command given")
    names = list(names)
    env = child_env(store, names, base)
    logger.debug("Running %s with %d credential(s): %s", command[0], len(names), names)
    try:
        completed = subprocess.run(list(command), env=env, check=False)
    finally:
        env.clear()
    return completed.returncode
