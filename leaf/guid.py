"""RFC 4122 / DCE 1.1 identifiers: value type, text and binary codecs, SQL helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

SIZE = 16

_HEX = re.compile(r"[0-9a-fA-F]*")
_URN_PREFIX = "urn:uuid:"
_BYTE_GROUPS = (8, 4, 4, 4, 12)

BytesLike = Union[bytes, bytearray, memoryview]


class UUIDError(ValueError):
    """Raised when a value cannot be turned into a UUID."""


class Variant(IntEnum):
    """UUID layout variants."""

    NCS = 0
    RFC4122 = 1
    MICROSOFT = 2
    FUTURE = 3


class Domain(IntEnum):
    """DCE security domains."""

    PERSON = 0
    GROUP = 1
    ORG = 2


class UUID:
    """An immutable 16-byte universally unique identifier."""

    __slots__ = ("_data",)

    def __init__(self, data: BytesLike) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"uuid: expected bytes, got {type(data).__name__}")
        raw = bytes(data)
        if len(raw) != SIZE:
            raise UUIDError(
                f"uuid: UUID must be exactly 16 bytes long, got {len(raw)} bytes"
            )
        self._data = raw

    def __str__(self) -> str:
        h = self._data.hex()
        return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:]}"

    def __repr__(self) -> str:
        return f"UUID('{self}')"

    def __bytes__(self) -> bytes:
        return self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UUID):
            return self._data == other._data
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._data)

    def version(self) -> int:
        """Algorithm version used to generate the UUID."""
        return self._data[6] >> 4

    def variant(self) -> Variant:
        """Layout variant of the UUID."""
        b = self._data[8]
        if b >> 7 == 0x00:
            return Variant.NCS
        if b >> 6 == 0x02:
            return Variant.RFC4122
        if b >> 5 == 0x06:
            return Variant.MICROSOFT
        return Variant.FUTURE

    def with_version(self, version: int) -> UUID:
        """Return a copy with the version bits set."""
        raw = bytearray(self._data)
        raw[6] = (raw[6] & 0x0F) | ((version << 4) & 0xF0)
        return UUID(raw)

    def with_variant(self, variant: int) -> UUID:
        """Return a copy with the variant bits set."""
        raw = bytearray(self._data)
        if variant == Variant.NCS:
            raw[8] = raw[8] & 0x7F
        elif variant == Variant.RFC4122:
            raw[8] = (raw[8] & 0x3F) | 0x80
        elif variant == Variant.MICROSOFT:
            raw[8] = (raw[8] & 0x1F) | 0xC0
        else:
            raw[8] = (raw[8] & 0x1F) | 0xE0
        return UUID(raw)

    def value(self) -> str:
        """Database value: the canonical string form."""
        return str(self)


NIL = UUID(bytes(SIZE))


def _decode_hex(text: str) -> bytes:
    if not _HEX.fullmatch(text) or len(text) % 2:
        raise UUIDError(f"uuid: invalid hex in UUID: {text}")
    return bytes.fromhex(text)


def _decode_hash_like(text: str) -> UUID:
    return UUID(_decode_hex(text))


def _decode_canonical(text: str) -> UUID:
    if any(text[i] != "-" for i in (8, 13, 18, 23)):
        raise UUIDError(f"uuid: incorrect UUID format {text}")
    groups = text.split("-")
    if [len(g) for g in groups] != list(_BYTE_GROUPS):
        raise UUIDError(f"uuid: incorrect UUID format {text}")
    return UUID(b"".join(_decode_hex(g) for g in groups))


def _decode_plain(text: str) -> UUID:
    if len(text) == 32:
        return _decode_hash_like(text)
    if len(text) == 36:
        return _decode_canonical(text)
    raise UUIDError(f"uuid: incorrect UUID length: {text}")


def _decode_braced(text: str) -> UUID:
    if text[0] != "{" or text[-1] != "}":
        raise UUIDError(f"uuid: incorrect UUID format {text}")
    return _decode_plain(text[1:-1])


def _decode_urn(text: str) -> UUID:
    if text[:9] != _URN_PREFIX:
        raise UUIDError(f"uuid: incorrect UUID format: {text}")
    return _decode_plain(text[9:])


def from_bytes(data: BytesLike) -> UUID:
    """Build a UUID from exactly 16 raw bytes."""
    return UUID(data)


def from_bytes_or_nil(data: BytesLike) -> UUID:
    """Like from_bytes, but return NIL on error."""
    try:
        return from_bytes(data)
    except UUIDError:
        return NIL


def from_string(text: str | BytesLike) -> UUID:
    """Parse canonical, hash-like, braced or URN text forms."""
    raw = text.encode() if isinstance(text, str) else bytes(text)
    s = raw.decode("latin-1")
    n = len(s)
    if n == 32:
        return _decode_hash_like(s)
    if n == 36:
        return _decode_canonical(s)
    if n == 38:
        return _decode_braced(s)
    if n in (41, 45):
        return _decode_urn(s)
    raise UUIDError(f"uuid: incorrect UUID length: {s}")


def from_string_or_nil(text: str | BytesLike) -> UUID:
    """Like from_string, but return NIL on error."""
    try:
        return from_string(text)
    except UUIDError:
        return NIL


def scan(src: object) -> UUID:
    """Convert a database value (16 raw bytes, text bytes or str) into a UUID."""
    if isinstance(src, (bytes, bytearray, memoryview)):
        if len(src) == SIZE:
            return from_bytes(src)
        return from_string(src)
    if isinstance(src, str):
        return from_string(src)
    raise UUIDError(f"uuid: cannot convert {type(src).__name__} to UUID")


@dataclass
class NullUUID:
    """A UUID that may be NULL in a database."""

    uuid: UUID = field(default=NIL)
    valid: bool = False

    def value(self) -> str | None:
        """Database value, or None when not valid."""
        if not self.valid:
            return None
        return self.uuid.value()

    def scan(self, src: object) -> None:
        """Load from a database value; None means NULL."""
        if src is None:
            self.uuid, self.valid = NIL, False
            return
        self.uuid = scan(src)
        self.valid = True


NAMESPACE_DNS = from_string("6ba7b810-9dad-11d1-80b4-00c04fd430c8")
NAMESPACE_URL = from_string("6ba7b811-9dad-11d1-80b4-00c04fd430c8")
NAMESPACE_OID = from_string("6ba7b812-9dad-11d1-80b4-00c04fd430c8")
NAMESPACE_X500 = from_string("6ba7b814-9dad-11d1-80b4-00c04fd430c8")