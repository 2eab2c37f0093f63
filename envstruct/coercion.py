"""
Type coercion table.

Maps a TypeTag to a pure `str -> value` converter. Converters raise ValueError
carrying the parser's own message; the resolver prefixes it with the variable
name. Nothing in here knows about fields, annotations or the environment.
"""

import math
import re
import struct
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from functools import partial
from typing import Any, Callable, Iterable

from envstruct import types


class TypeTag(str, Enum):
    """Semantic target types understood by the coercion table."""

    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    BYTE = "byte"
    RUNE = "rune"
    DURATION = "duration"
    TIMESTAMP = "timestamp"
    PATTERN = "pattern"


class ArityError(ValueError):
    """A single-unit value (byte / rune) got zero or several units."""


# Declared Python type -> tag. Byte and Rune are the same objects as Uint8 and
# Int32, so they only become BYTE / RUNE through a type= alias.
TYPE_TAGS: dict[Any, TypeTag] = {
    int: TypeTag.INT,
    types.Int: TypeTag.INT,
    types.Int8: TypeTag.INT8,
    types.Int16: TypeTag.INT16,
    types.Int32: TypeTag.INT32,
    types.Int64: TypeTag.INT64,
    types.Uint: TypeTag.UINT,
    types.Uint8: TypeTag.UINT8,
    types.Uint16: TypeTag.UINT16,
    types.Uint32: TypeTag.UINT32,
    types.Uint64: TypeTag.UINT64,
    float: TypeTag.FLOAT64,
    types.Float64: TypeTag.FLOAT64,
    types.Float32: TypeTag.FLOAT32,
    bool: TypeTag.BOOL,
    str: TypeTag.STRING,
    bytes: TypeTag.BYTES,
    timedelta: TypeTag.DURATION,
    datetime: TypeTag.TIMESTAMP,
    re.Pattern: TypeTag.PATTERN,
}

TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INFINITY_LITERALS = frozenset({"inf", "infinity"})

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")

_RFC3339_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})[Tt]"
    r"([0-9]{2}):([0-9]{2}):([0-9]{2})(\.[0-9]+)?"
    r"([Zz]|[+-][0-9]{2}:[0-9]{2})"
)

_DURATION_PART_RE = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")

# nanoseconds per unit
_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_MAX_DURATION_NS = (1 << 63) - 1


def _parse_int(raw: str, bits: int, signed: bool) -> int:
    if not (_SIGNED_RE if signed else _UNSIGNED_RE).fullmatch(raw):
        raise ValueError(f"invalid literal for int() with base 10: {raw!r}")
    value = int(raw)
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        kind = "signed" if signed else "unsigned"
        raise ValueError(f"value {raw!r} out of range for {bits}-bit {kind} integer")
    return value


def _parse_float(raw: str, bits: int) -> float:
    # float() tolerates padding and digit grouping, environment values should not
    if raw != raw.strip() or "_" in raw:
        raise ValueError(f"could not convert string to float: {raw!r}")
    value = float(raw)
    if math.isinf(value):
        if raw.lstrip("+-").lower() not in _INFINITY_LITERALS:
            raise ValueError(f"value {raw!r} out of range for {bits}-bit float")
        return value
    if bits == 32:
        try:
            value = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError:
            value = math.inf
        # pack rounds past the single precision range to inf on some builds
        if math.isinf(value):
            raise ValueError(f"value {raw!r} out of range for 32-bit float")
    return value


def _parse_bool(raw: str) -> bool:
    if raw in TRUE_LITERALS:
        return True
    if raw in FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean literal {raw!r}")


def _parse_string(raw: str) -> str:
    return raw


def _parse_bytes(raw: str) -> bytes:
    return raw.encode("utf-8")


def _parse_byte(raw: str) -> int:
    encoded = raw.encode("utf-8")
    if len(encoded) != 1:
        raise ArityError("byte must be a single character value")
    return encoded[0]


def _parse_rune(raw: str) -> int:
    if len(raw) != 1:
        raise ArityError("rune must be a single character value")
    return ord(raw)


def _parse_duration(raw: str) -> timedelta:
    """Parse a duration such as "300ms", "-1.5h" or "2h45m"."""
    text = raw
    negative = False
    if text and text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f'invalid duration "{raw}"')

    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _DURATION_PART_RE.match(text, pos)
        number, unit = match.group(1), match.group(2)
        if number in ("", "."):
            raise ValueError(f'invalid duration "{raw}"')
        if not unit:
            raise ValueError(f'missing unit in duration "{raw}"')
        if unit not in _DURATION_UNITS:
            raise ValueError(f'unknown unit "{unit}" in duration "{raw}"')
        total += Decimal(number) * _DURATION_UNITS[unit]
        pos = match.end()

    # must fit a signed 64-bit nanosecond count
    limit = _MAX_DURATION_NS + 1 if negative else _MAX_DURATION_NS
    if total > limit:
        raise ValueError(f'invalid duration "{raw}"')

    micros = int((total / 1000).to_integral_value(rounding=ROUND_HALF_EVEN))
    result = timedelta(microseconds=micros)
    return -result if negative else result


def _parse_timestamp(raw: str) -> datetime:
    match = _RFC3339_RE.fullmatch(raw)
    if not match:
        raise ValueError(f"invalid RFC3339 timestamp {raw!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, offset = match.group(7), match.group(8)

    micros = int((fraction[1:] + "000000")[:6]) if fraction else 0
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if minutes > 59:
            raise ValueError(f"invalid RFC3339 timestamp {raw!r}")
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)


def _parse_pattern(raw: str) -> "re.Pattern[str]":
    try:
        return re.compile(raw)
    except re.error as err:
        raise ValueError(str(err)) from err


PARSERS: dict[TypeTag, Callable[[str], Any]] = {
    TypeTag.INT: partial(_parse_int, bits=32, signed=True),
    TypeTag.INT8: partial(_parse_int, bits=8, signed=True),
    TypeTag.INT16: partial(_parse_int, bits=16, signed=True),
    TypeTag.INT32: partial(_parse_int, bits=32, signed=True),
    TypeTag.INT64: partial(_parse_int, bits=64, signed=True),
    TypeTag.UINT: partial(_parse_int, bits=32, signed=False),
    TypeTag.UINT8: partial(_parse_int, bits=8, signed=False),
    TypeTag.UINT16: partial(_parse_int, bits=16, signed=False),
    TypeTag.UINT32: partial(_parse_int, bits=32, signed=False),
    TypeTag.UINT64: partial(_parse_int, bits=64, signed=False),
    TypeTag.FLOAT32: partial(_parse_float, bits=32),
    TypeTag.FLOAT64: partial(_parse_float, bits=64),
    TypeTag.BOOL: _parse_bool,
    TypeTag.STRING: _parse_string,
    TypeTag.BYTES: _parse_bytes,
    TypeTag.BYTE: _parse_byte,
    TypeTag.RUNE: _parse_rune,
    TypeTag.DURATION: _parse_duration,
    TypeTag.TIMESTAMP: _parse_timestamp,
    TypeTag.PATTERN: _parse_pattern,
}

_missing = set(TypeTag) - set(PARSERS)
if _missing:
    raise RuntimeError(f"coercion table has no parser for {sorted(t.value for t in _missing)}")


def coerce(tag: TypeTag, raw: str) -> Any:
    """Convert one raw string. Raises ValueError with the parser's message."""
    return PARSERS[tag](raw)


def coerce_many(tag: TypeTag, parts: Iterable[str]) -> list[Any]:
    """Convert every part, stopping at the first one that does not parse."""
    parse = PARSERS[tag]
    return [parse(part) for part in parts]


def _format_duration(value: timedelta) -> str:
    micros = value // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    hours, rest = divmod(abs(micros), 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds, fraction = divmod(rest, 1_000_000)

    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += str(seconds)
    if fraction:
        out += f".{fraction:06d}".rstrip("0")
    return out + "s"


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        return value.isoformat() + "Z"
    text = value.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def format_value(tag: TypeTag, value: Any) -> str:
    """Render a native value in a form `coerce(tag, ...)` reads back to an equal value."""
    if tag == TypeTag.BOOL:
        return "true" if value else "false"
    if tag in (TypeTag.FLOAT32, TypeTag.FLOAT64):
        return repr(float(value))
    if tag == TypeTag.BYTES:
        return value.decode("utf-8")
    if tag in (TypeTag.BYTE, TypeTag.RUNE):
        return chr(value)
    if tag == TypeTag.DURATION:
        return _format_duration(value)
    if tag == TypeTag.TIMESTAMP:
        return _format_timestamp(value)
    if tag == TypeTag.PATTERN:
        return value.pattern
    return str(value)
