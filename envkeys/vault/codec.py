"""
Record Codec — Flat ``NAME="VALUE"`` serialization of the credential set.

Plaintext layout::

    # envkeys credential store          <- header banner (comment lines)
    OPENAI_API_KEY="sk-..."
    GITHUB_TOKEN="ghp_..."

Values are written as JSON string literals, so quotes, backslashes and
newlines inside a value are escaped and survive a round trip. Reading is
permissive: comments, blank lines and malformed lines are skipped, and a
bare or single-quoted value is accepted as-is.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import orjson

from .exceptions import ValidationError

logger = logging.getLogger("envkeys.vault")

NAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")
ENCODING = "utf-8"


@dataclass
class CredentialRecord:
    name: str
    value: str

    def __repr__(self) -> str:
        # never render the value
        return f"CredentialRecord(name={self.name!r})"


@dataclass
class CredentialSet:
    """Ordered credential records plus leading header comment lines."""

    header: list[str] = field(default_factory=list)
    records: list[CredentialRecord] = field(default_factory=list)

    def names(self) -> list[str]:
        return [record.name for record in self.records]

    def items(self) -> list[tuple[str, str]]:
        return [(record.name, record.value) for record in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, name: object) -> bool:
        return any(record.name == name for record in self.records)


def validate_name(name: str) -> str:
    """Raise ``ValidationError`` unless ``name`` is a non-empty identifier."""
    if not name:
        raise ValidationError("Credential name cannot be empty")
    if not NAME_PATTERN.fullmatch(name):
        raise ValidationError(
            f"Invalid credential name {name!r}: "
            "use letters, digits and underscore only"
        )
    return name


def validate_value(value: str) -> str:
    """Raise ``ValidationError`` unless ``value`` is a non-empty, NUL-free string."""
    if not isinstance(value, str):
        raise ValidationError("Credential value must be a string")
    if not value:
        raise ValidationError("Credential value cannot be empty")
    if "\x00" in value:
        # cannot be passed through a process environment
        raise ValidationError("Credential value cannot contain NUL characters")
    return value


def empty_set(header: Iterable[str] = ()) -> CredentialSet:
    return CredentialSet(header=list(header))


def _encode_value(value: str) -> bytes:
    try:
        return orjson.dumps(value)
    except orjson.JSONEncodeError as err:
        raise ValidationError(f"Credential value cannot be encoded: {err}") from err


def _decode_value(raw: str) -> str:
    raw = raw.strip()
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        try:
            value = orjson.loads(raw)
        except orjson.JSONDecodeError:
            return raw[1:-1]
        if isinstance(value, str):
            return value
        return raw[1:-1]
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]
    return raw


def serialize(cs: CredentialSet) -> bytes:
    """Render ``cs`` as header lines followed by ``NAME="VALUE"`` lines.

    Raises:
        ValidationError: If a record name is not a valid identifier.
    """
    lines = [line.encode(ENCODING) for line in cs.header]
    for record in cs.records:
        validate_name(record.name)
        lines.append(record.name.encode(ENCODING) + b"=" + _encode_value(record.value))
    return b"\n".join(lines) + b"\n" if lines else b""


def parse(data: bytes) -> CredentialSet:
    """Parse plaintext produced by ``serialize`` (or written by hand).

    Leading comment lines become the header. Later duplicates of a name
    overwrite the value but keep the first position.
    """
    cs = CredentialSet()
    text = bytes(data).decode(ENCODING, errors="replace")
    in_header = True
    skipped = 0
    # split on "\n" only: str.splitlines() would also break on U+2028 etc.,
    # which JSON leaves unescaped inside values
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            if in_header:
                cs.header.append(stripped)
            continue
        if not stripped:
            continue
        in_header = False
        name, sep, raw = stripped.partition("=")
        name = name.strip()
        if name.startswith("export "):
            name = name[len("export "):].strip()
        if not sep or not name or not NAME_PATTERN.fullmatch(name):
            skipped += 1
            continue
        upsert(cs, name, _decode_value(raw))
    if skipped:
        logger.debug("Skipped %d malformed credential line(s)", skipped)
    return cs


def find(cs: CredentialSet, name: str) -> Optional[CredentialRecord]:
    for record in cs.records:
        if record.name == name:
            return record
    return None


def upsert(cs: CredentialSet, name: str, value: str) -> bool:
    """Set ``name`` to ``value`` in place, or append it.

    Returns:
        True if a new record was inserted, False if one was updated.
    """
    record = find(cs, name)
    if record is not None:
        record.value = value
        return False
    cs.records.append(CredentialRecord(name=name, value=value))
    return True


def delete(cs: CredentialSet, name: str) -> bool:
    """Remove ``name`` from ``cs``; True if a record was removed."""
    for index, record in enumerate(cs.records):
        if record.name == name:
            del cs.records[index]
            return True
    return False
