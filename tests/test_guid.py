import pytest

from leaf.guid import (
    NAMESPACE_DNS,
    NAMESPACE_URL,
    NIL,
    UUID,
    NullUUID,
    UUIDError,
    Variant,
    from_bytes,
    from_bytes_or_nil,
    from_string,
    from_string_or_nil,
    scan,
)

RAW = bytes(
    [0x6B, 0xA7, 0xB8, 0x10, 0x9D, 0xAD, 0x11, 0xD1,
     0x80, 0xB4, 0x00, 0xC0, 0x4F, 0xD4, 0x30, 0xC8]
)
CANONICAL = "6ba7b810-9dad-11d1-80b4-00c04fd430c8"
URL_CANONICAL = "6ba7b811-9dad-11d1-80b4-00c04fd430c8"


def test_bytes():
    assert bytes(UUID(RAW)) == RAW


def test_string():
    assert str(NAMESPACE_DNS) == CANONICAL
    assert str(from_string(CANONICAL)) == CANONICAL


def test_equal():
    assert from_string(CANONICAL) == NAMESPACE_DNS
    assert from_string(URL_CANONICAL) == NAMESPACE_URL
    assert not (from_string(CANONICAL) == NAMESPACE_URL)


def test_version():
    u = UUID(bytes([0, 0, 0, 0, 0, 0, 0x10] + [0] * 9))
    assert u.version() == 1


def test_set_version():
    assert NIL.with_version(4).version() == 4


@pytest.mark.parametrize(
    "byte8, expected",
    [
        (0x00, Variant.NCS),
        (0x80, Variant.RFC4122),
        (0xC0, Variant.MICROSOFT),
        (0xE0, Variant.FUTURE),
    ],
)
def test_variant(byte8, expected):
    u = UUID(bytes([0] * 8 + [byte8] + [0] * 7))
    assert u.variant() == expected


def test_set_variant():
    u = NIL
    for v in (Variant.NCS, Variant.RFC4122, Variant.MICROSOFT, Variant.FUTURE):
        u = u.with_variant(v)
        assert u.variant() == v


def test_from_bytes():
    assert from_bytes(RAW) == UUID(RAW)
    with pytest.raises(UUIDError):
        from_bytes(b"")


def test_marshal_binary():
    assert bytes(UUID(RAW)) == RAW


def test_unmarshal_binary_error():
    with pytest.raises(UUIDError):
        UUID(b"")


@pytest.mark.parametrize(
    "text",
    [
        CANONICAL,
        "{6ba7b810-9dad-11d1-80b4-00c04fd430c8}",
        "urn:uuid:6ba7b810-9dad-11d1-80b4-00c04fd430c8",
        "6ba7b8109dad11d180b400c04fd430c8",
        "urn:uuid:6ba7b8109dad11d180b400c04fd430c8",
    ],
)
def test_from_string(text):
    assert from_string(text) == UUID(RAW)


def test_from_string_empty():
    with pytest.raises(UUIDError):
        from_string("")


def test_from_string_short():
    s = "6ba7b810-9dad-11d1-80b4-00c04fd430c"
    for i in range(len(s), -1, -1):
        with pytest.raises(UUIDError):
            from_string(s[:i])


@pytest.mark.parametrize(
    "text",
    [
        "6ba7b810-9dad-11d1-80b4-00c04fd430c8=",
        "6ba7b810-9dad-11d1-80b4-00c04fd430c8}",
        "{6ba7b810-9dad-11d1-80b4-00c04fd430c8}f",
        "6ba7b810-9dad-11d1-80b4-00c04fd430c800c04fd430c8",
    ],
)
def test_from_string_long(text):
    with pytest.raises(UUIDError):
        from_string(text)


@pytest.mark.parametrize(
    "text",
    [
        "6ba7b8109dad11d180b400c04fd430c86ba7b8109dad11d180b400c04fd430c8",
        "urn:uuid:{6ba7b810-9dad-11d1-80b4-00c04fd430c8}",
        "uuid:urn:6ba7b810-9dad-11d1-80b4-00c04fd430c8",
        "uuid:urn:6ba7b8109dad11d180b400c04fd430c8",
        "6ba7b8109-dad-11d1-80b4-00c04fd430c8",
        "6ba7b810-9dad1-1d1-80b4-00c04fd430c8",
        "6ba7b810-9dad-11d18-0b4-00c04fd430c8",
        "6ba7b810-9dad-11d1-80b40-0c04fd430c8",
        "6ba7b810+9dad+11d1+80b4+00c04fd430c8",
        "(6ba7b810-9dad-11d1-80b4-00c04fd430c8}",
        "{6ba7b810-9dad-11d1-80b4-00c04fd430c8>",
        "zba7b810-9dad-11d1-80b4-00c04fd430c8",
        "6ba7b810-9dad11d180b400c04fd430c8",
        "6ba7b8109dad-11d180b400c04fd430c8",
        "6ba7b8109dad11d1-80b400c04fd430c8",
        "6ba7b8109dad11d180b4-00c04fd430c8",
    ],
)
def test_from_string_invalid(text):
    with pytest.raises(UUIDError):
        from_string(text)


def test_from_string_or_nil():
    assert from_string_or_nil("") == NIL
    assert from_string_or_nil(CANONICAL) == UUID(RAW)


def test_from_bytes_or_nil():
    assert from_bytes_or_nil(b"") == NIL
    assert from_bytes_or_nil(RAW) == UUID(RAW)


def test_marshal_text():
    assert str(UUID(RAW)).encode() == CANONICAL.encode()


def test_unmarshal_text():
    assert from_string(CANONICAL.encode()) == UUID(RAW)
    with pytest.raises(UUIDError):
        from_string(b"")


def test_string_round_trip():
    u = UUID(RAW)
    assert from_string(str(u)) == u


def test_value():
    u = from_string(CANONICAL)
    assert u.value() == str(u)


def test_value_nil():
    assert NIL.value() == "00000000-0000-0000-0000-000000000000"


def test_null_uuid_value_nil():
    assert NullUUID().value() is None


def test_scan_binary():
    assert scan(RAW) == UUID(RAW)
    with pytest.raises(UUIDError):
        scan(b"")


def test_scan_string():
    assert scan(CANONICAL) == UUID(RAW)
    with pytest.raises(UUIDError):
        scan("")


def test_scan_text():
    assert scan(CANONICAL.encode()) == UUID(RAW)
    with pytest.raises(UUIDError):
        scan(b"")


def test_scan_unsupported():
    with pytest.raises(UUIDError):
        scan(True)


def test_scan_nil():
    with pytest.raises(UUIDError):
        scan(None)


def test_null_uuid_scan_valid():
    n = NullUUID()
    n.scan(CANONICAL)
    assert n.valid is True
    assert n.uuid == UUID(RAW)
    assert n.value() == CANONICAL


def test_null_uuid_scan_nil():
    n = NullUUID(UUID(RAW), True)
    n.scan(None)
    assert n.valid is False
    assert n.uuid == NIL


def test_hashable():
    assert len({UUID(RAW), from_string(CANONICAL), NIL}) == 2