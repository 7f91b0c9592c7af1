"""Loose conversions between Python values, strings, numbers, JSON and base64."""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import math
import os
import re
from collections.abc import Mapping, MutableMapping
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any

_ENV_VAR = re.compile(r"\$\{([^}]*)\}")
_SIGNED_INT = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT = re.compile(r"[0-9]+")
_STD_B64 = re.compile(r"[A-Za-z0-9+/]*")
_URL_B64 = re.compile(r"[A-Za-z0-9\-_]*")

_TIME_TOKENS = ("%Y", "%m", "%d", "%H", "%M")
_B64_SUFFIX = "_b64"

_JSON_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


class _Unencodable(ValueError):
    """Raised internally when a value has no JSON form."""


def _wrap(n: int, bits: int, signed: bool) -> int:
    mask = (1 << bits) - 1
    n &= mask
    if signed and n >> (bits - 1):
        n -= 1 << bits
    return n


def _clamp(n: int, bits: int, signed: bool) -> int:
    if signed:
        lo, hi = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        lo, hi = 0, (1 << bits) - 1
    return max(lo, min(hi, n))


def _parse_float(s: str) -> float:
    if "_" in s:
        return 0.0
    try:
        return float(s)
    except ValueError:
        return 0.0


def _parse_int(s: str, signed: bool = True) -> int:
    pattern = _SIGNED_INT if signed else _UNSIGNED_INT
    if not pattern.fullmatch(s):
        return 0
    return _clamp(int(s), 64, signed)


def _trunc(f: float) -> int:
    if not math.isfinite(f):
        return 0
    return int(f)


def _format_float(f: float) -> str:
    """Shortest float text in the JSON style: fixed notation in [1e-6, 1e21)."""
    if not math.isfinite(f):
        raise _Unencodable(f"unsupported value: {f}")
    r = repr(f)
    a = abs(f)
    if a == 0 or 1e-6 <= a < 1e21:
        s = format(Decimal(r), "f")
        if "." in s:
            s = s.rstrip("0").rstrip(".")
        return s
    mantissa, exponent = r.split("e")
    sign, digits = exponent[0], exponent[1:]
    if sign == "-" and len(digits) == 2 and digits[0] == "0":
        digits = digits[1]
    return f"{mantissa}e{sign}{digits}"


def _escape_char(ch: str) -> str:
    if ch in _JSON_ESCAPES:
        return _JSON_ESCAPES[ch]
    if "\ud800" <= ch <= "\udfff":
        return "\ufffd"
    if ch < " " or ch in "\u2028\u2029":
        return f"\\u{ord(ch):04x}"
    return ch


def _quote(s: str) -> str:
    return '"' + "".join(_escape_char(ch) for ch in s) + '"'


def _json_field_name(f: dataclasses.Field) -> str:
    return f.metadata.get("json") or f.name


def _encode(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return _format_float(v)
    if isinstance(v, str):
        return _quote(v)
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _quote(base64.b64encode(bytes(v)).decode("ascii"))
    if isinstance(v, Mapping):
        items = []
        for key, val in v.items():
            if isinstance(key, bool) or not isinstance(key, (str, int)):
                raise _Unencodable(f"unsupported map key: {key!r}")
            items.append((str(key), val))
        items.sort(key=lambda kv: kv[0])
        return "{" + ",".join(f"{_quote(k)}:{_encode(val)}" for k, val in items) + "}"
    if dataclasses.is_dataclass(v) and not isinstance(v, type):
        parts = (
            f"{_quote(_json_field_name(f))}:{_encode(getattr(v, f.name))}"
            for f in dataclasses.fields(v)
        )
        return "{" + ",".join(parts) + "}"
    if isinstance(v, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in v) + "]"
    raise _Unencodable(f"unsupported type: {type(v).__name__}")


def env_string(o: Any) -> str:
    """Stringify o, expanding a leading '~' to $HOME and every ${NAME} from the environment."""
    text = to_string(o)
    if text.startswith("~"):
        text = os.environ.get("HOME", "") + text[1:]
    return _ENV_VAR.sub(lambda m: os.environ.get(m.group(1), ""), text)


def get_file_path(pattern: str, tz: tzinfo | None = None) -> str:
    """Expand environment references and %Y %m %d %H %M with the current time."""
    path = env_string(pattern)
    now = datetime.now(tz) if tz is not None else datetime.now()
    for token, value in zip(_TIME_TOKENS, now.strftime("%Y-%m-%d-%H-%M").split("-")):
        path = path.replace(token, value)
    return path


def to_json(v: Any) -> str:
    """Compact JSON with sorted map keys and no HTML escaping; '' if v has no JSON form."""
    try:
        return _encode(v)
    except _Unencodable:
        return ""


def json_to_map(b: bytes | str | None) -> dict[str, Any] | None:
    """Decode a JSON object; None for empty input, invalid JSON or a non-object."""
    if not b:
        return None
    try:
        obj = json.loads(b)
    except (ValueError, UnicodeDecodeError):
        return None
    return obj if isinstance(obj, dict) else None


def map_to_str(qs: Mapping[str, str], sep: str, inner_sep: str) -> str:
    """Join 'key<inner_sep>value' pairs, sorted, with sep."""
    return sep.join(sorted(k + inner_sep + v for k, v in qs.items()))


def _to_integer(v: Any, signed: bool) -> int:
    if v is None:
        return 0
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _to_integer(bytes(v).decode("utf-8", "replace"), signed)
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return 0
        if "." in s:
            return _wrap(_trunc(_parse_float(s)), 64, signed)
        return _parse_int(s, signed)
    if isinstance(v, bool):
        return 1 if v else 0
    if isinstance(v, int):
        return _wrap(v, 64, signed)
    if isinstance(v, float):
        return _wrap(_trunc(v), 64, signed)
    return 0


def to_int64(v: Any) -> int:
    """Convert to a signed 64-bit integer; unconvertible values give 0."""
    return _to_integer(v, signed=True)


def to_uint64(v: Any) -> int:
    """Convert to an unsigned 64-bit integer; unconvertible values give 0."""
    return _to_integer(v, signed=False)


def to_base64_str(v: Any) -> str:
    """Standard base64 of bytes, of a string's UTF-8, or of a value's JSON line."""
    if v is None:
        return ""
    if isinstance(v, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(v)).decode("ascii")
    if isinstance(v, str):
        return base64.b64encode(v.encode("utf-8")).decode("ascii")
    encoded = to_json(v)
    if not encoded:
        return ""
    return base64.b64encode((encoded + "\n").encode("utf-8")).decode("ascii")


def to_float(v: Any) -> float:
    """Convert to float; unconvertible values give 0.0."""
    if v is None:
        return 0.0
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _parse_float(bytes(v).decode("utf-8", "replace").strip())
    if isinstance(v, str):
        return _parse_float(v.strip()) if v else 0.0
    if isinstance(v, bool):
        return 1.0 if v else 0.0
    if isinstance(v, (int, float)):
        return float(v)
    return 0.0


def to_bytes(v: Any) -> bytes:
    """Bytes as they are, a non-empty string as UTF-8, anything else empty."""
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v)
    if isinstance(v, str):
        return v.encode("utf-8")
    return b""


def to_string_wrap(v: Any) -> str:
    """Stringify and wrap in double quotes, escaping backslashes and quotes."""
    body = to_string(v).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{body}"'


def map_to_line(m: Mapping[str, str]) -> str:
    """'k=v' pairs in key order joined by backticks."""
    return "`".join(f"{k}={m[k]}" for k in sorted(m))


def to_string_and_trim(v: Any) -> str:
    """to_string with surrounding whitespace removed."""
    return to_string(v).strip()


def to_string(v: Any) -> str:
    """Text form of a value; containers and records become JSON."""
    if v is None:
        return ""
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v).decode("utf-8", "replace")
    if isinstance(v, str):
        return v
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        try:
            return _format_float(v)
        except _Unencodable:
            return ""
    return to_json(v)


def to_int(v: Any) -> int:
    """Convert to int, parsing strings as floats and truncating; otherwise 0."""
    if v is None:
        return 0
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _trunc(_parse_float(bytes(v).decode("utf-8", "replace").strip()))
    if isinstance(v, str):
        return _trunc(_parse_float(v.strip())) if v else 0
    if isinstance(v, float):
        return _trunc(v)
    if isinstance(v, bool):
        return 1 if v else 0
    if isinstance(v, int):
        return v
    return 0


def to_int32(v: Any) -> int:
    """Convert to a signed 32-bit integer; strings must hold a whole number."""
    if v is None:
        return 0
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _wrap(_parse_int(bytes(v).decode("utf-8", "replace").strip()), 32, True)
    if isinstance(v, str):
        return _wrap(_parse_int(v.strip()), 32, True) if v else 0
    if isinstance(v, float):
        return _wrap(_trunc(v), 32, True)
    if isinstance(v, bool):
        return 1 if v else 0
    if isinstance(v, int):
        return _wrap(v, 32, True)
    return 0


def to_map(obj: Any) -> dict[str, Any]:
    """A dict as it is, or a dataclass instance keyed by each field's 'json' metadata or name."""
    if isinstance(obj, dict):
        return obj
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {_json_field_name(f): getattr(obj, f.name) for f in dataclasses.fields(obj)}
    raise TypeError(f"expected a dict or dataclass instance, got {type(obj).__name__}")


def to_bool(v: Any) -> bool:
    """'true'/'ok' (any case) are true for text; other values by their integer value."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.lower() in ("true", "ok")
    if isinstance(v, (bytes, bytearray, memoryview)):
        return to_string(v).lower() in ("true", "ok")
    return to_int(v) != 0


def _decode_text(raw: bytes) -> str:
    return raw.decode("utf-8", "replace")


def from_b64(key: str, qs: MutableMapping[str, str]) -> str:
    """If qs[key] holds base64, store its decoding under key without '_b64'; return that entry."""
    if key == "":
        return ""
    origin_key = key[: -len(_B64_SUFFIX)] if key.endswith(_B64_SUFFIX) else key
    encoded = qs.get(key, "")
    if encoded:
        if origin_key == "":
            return ""
        try:
            decoded = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            return ""
        qs[origin_key] = _decode_text(decoded)
    return qs.get(origin_key, "")


def _raw_b64decode(text: str, alphabet: re.Pattern[str], altchars: bytes | None) -> bytes:
    if not alphabet.fullmatch(text) or len(text) % 4 == 1:
        raise ValueError("illegal base64 data")
    padded = text + "=" * (-len(text) % 4)
    return base64.b64decode(padded, altchars=altchars, validate=True)


def from_b64_map(qs: MutableMapping[str, str]) -> None:
    """Replace every decodable '<name>_b64' entry by '<name>' holding the decoded text."""
    for key in [k for k in qs if k.endswith(_B64_SUFFIX)]:
        value = qs[key].rstrip("=")
        try:
            decoded = _raw_b64decode(value, _STD_B64, None)
        except (binascii.Error, ValueError):
            try:
                decoded = _raw_b64decode(value, _URL_B64, b"-_")
            except (binascii.Error, ValueError):
                continue
        del qs[key]
        qs[key[: -len(_B64_SUFFIX)]] = _decode_text(decoded)


def to_b64_map(qs: MutableMapping[str, str]) -> None:
    """Replace every entry whose value holds '&' by '<name>_b64' with its base64 form."""
    for key in [k for k, v in qs.items() if "&" in v]:
        value = qs.pop(key)
        qs[key + _B64_SUFFIX] = base64.b64encode(value.encode("utf-8")).decode("ascii")