"""
Tests for the coercion table
"""

import re
import struct
from datetime import datetime, timedelta, timezone

import pytest

from envstruct.coercion import (
    FALSE_LITERALS,
    PARSERS,
    TRUE_LITERALS,
    ArityError,
    TypeTag,
    coerce,
    coerce_many,
    format_value,
)


def test_table_covers_every_tag():
    assert set(PARSERS) == set(TypeTag)


@pytest.mark.parametrize(
    "tag, low, high",
    [
        (TypeTag.INT8, -128, 127),
        (TypeTag.INT16, -32768, 32767),
        (TypeTag.INT32, -(2**31), 2**31 - 1),
        (TypeTag.INT, -(2**31), 2**31 - 1),
        (TypeTag.INT64, -(2**63), 2**63 - 1),
        (TypeTag.UINT8, 0, 255),
        (TypeTag.UINT16, 0, 65535),
        (TypeTag.UINT32, 0, 2**32 - 1),
        (TypeTag.UINT, 0, 2**32 - 1),
        (TypeTag.UINT64, 0, 2**64 - 1),
    ],
)
def test_integer_width(tag, low, high):
    assert coerce(tag, str(low)) == low
    assert coerce(tag, str(high)) == high
    with pytest.raises(ValueError, match="out of range"):
        coerce(tag, str(high + 1))


def test_signed_below_range():
    with pytest.raises(ValueError, match="out of range for 8-bit signed integer"):
        coerce(TypeTag.INT8, "-129")


def test_unsigned_rejects_sign():
    with pytest.raises(ValueError, match="invalid literal"):
        coerce(TypeTag.UINT8, "-1")
    with pytest.raises(ValueError, match="invalid literal"):
        coerce(TypeTag.UINT8, "+1")


def test_signed_accepts_plus():
    assert coerce(TypeTag.INT, "+42") == 42


@pytest.mark.parametrize("raw", ["", " 1", "1 ", "1_000", "0x10", "1.0", "abc"])
def test_integer_syntax(raw):
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.INT64, raw)
    assert str(exc.value) == f"invalid literal for int() with base 10: {raw!r}"


def test_float64():
    assert coerce(TypeTag.FLOAT64, "1.5") == 1.5
    assert coerce(TypeTag.FLOAT64, "-2e3") == -2000.0
    assert coerce(TypeTag.FLOAT64, "1e39") == 1e39


def test_float32_rounds_to_single_precision():
    expected = struct.unpack("f", struct.pack("f", 0.1))[0]
    assert coerce(TypeTag.FLOAT32, "0.1") == expected
    assert coerce(TypeTag.FLOAT32, "0.1") != 0.1


def test_float32_overflow():
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.FLOAT32, "1e39")
    assert str(exc.value) == "value '1e39' out of range for 32-bit float"


def test_float32_infinity_passes_through():
    assert coerce(TypeTag.FLOAT32, "inf") == float("inf")


@pytest.mark.parametrize("tag, bits", [(TypeTag.FLOAT32, 32), (TypeTag.FLOAT64, 64)])
@pytest.mark.parametrize("raw", ["1e400", "-1e400"])
def test_float_overflow_is_not_infinity(tag, bits, raw):
    with pytest.raises(ValueError) as exc:
        coerce(tag, raw)
    assert str(exc.value) == f"value {raw!r} out of range for {bits}-bit float"


def test_float32_rejects_values_past_single_precision():
    with pytest.raises(ValueError, match="out of range for 32-bit float"):
        coerce(TypeTag.FLOAT32, "-3.5e38")
    assert coerce(TypeTag.FLOAT32, "3.4e38") < float("inf")


@pytest.mark.parametrize("tag", [TypeTag.FLOAT32, TypeTag.FLOAT64])
@pytest.mark.parametrize("raw, sign", [("inf", 1), ("+Inf", 1), ("-Infinity", -1), ("INFINITY", 1)])
def test_float_infinity_literals(tag, raw, sign):
    assert coerce(tag, raw) == sign * float("inf")



@pytest.mark.parametrize("raw", ["", "abc", " 1.5", "1_0.5"])
def test_float_syntax(raw):
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.FLOAT64, raw)
    assert str(exc.value) == f"could not convert string to float: {raw!r}"


@pytest.mark.parametrize("raw", sorted(TRUE_LITERALS))
def test_bool_true(raw):
    assert coerce(TypeTag.BOOL, raw) is True


@pytest.mark.parametrize("raw", sorted(FALSE_LITERALS))
def test_bool_false(raw):
    assert coerce(TypeTag.BOOL, raw) is False


def test_bool_literal_set_is_pinned():
    assert TRUE_LITERALS == {"1", "t", "T", "TRUE", "true", "True"}
    assert FALSE_LITERALS == {"0", "f", "F", "FALSE", "false", "False"}


@pytest.mark.parametrize("raw", ["", "yes", "no", "TrUe", "on", "2"])
def test_bool_rejects(raw):
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.BOOL, raw)
    assert str(exc.value) == f"invalid boolean literal {raw!r}"


def test_string_and_bytes():
    assert coerce(TypeTag.STRING, " a,b ") == " a,b "
    assert coerce(TypeTag.BYTES, "héllo") == "héllo".encode("utf-8")


def test_byte():
    assert coerce(TypeTag.BYTE, "a") == 97
    for raw in ["", "ab", "é"]:
        with pytest.raises(ArityError, match="byte must be a single character value"):
            coerce(TypeTag.BYTE, raw)


def test_rune():
    assert coerce(TypeTag.RUNE, "é") == 233
    assert coerce(TypeTag.RUNE, "😀") == 0x1F600
    for raw in ["", "ab"]:
        with pytest.raises(ArityError, match="rune must be a single character value"):
            coerce(TypeTag.RUNE, raw)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0", timedelta(0)),
        ("10s", timedelta(seconds=10)),
        ("1h", timedelta(hours=1)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5s", timedelta(seconds=1.5)),
        (".5m", timedelta(seconds=30)),
        ("-10ms", -timedelta(milliseconds=10)),
        ("+2m", timedelta(minutes=2)),
        ("300us", timedelta(microseconds=300)),
        ("300µs", timedelta(microseconds=300)),
        ("300μs", timedelta(microseconds=300)),
        ("2000ns", timedelta(microseconds=2)),
        ("1m0.5s", timedelta(seconds=60.5)),
    ],
)
def test_duration(raw, expected):
    assert coerce(TypeTag.DURATION, raw) == expected


@pytest.mark.parametrize(
    "raw, message",
    [
        ("", 'invalid duration ""'),
        ("-", 'invalid duration "-"'),
        ("s", 'invalid duration "s"'),
        ("10", 'missing unit in duration "10"'),
        ("1h10", 'missing unit in duration "1h10"'),
        ("10x", 'unknown unit "x" in duration "10x"'),
        ("10 s", 'unknown unit " s" in duration "10 s"'),
    ],
)
def test_duration_errors(raw, message):
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.DURATION, raw)
    assert str(exc.value) == message


def test_duration_limits():
    assert coerce(TypeTag.DURATION, "2562047h") == timedelta(hours=2562047)
    assert coerce(TypeTag.DURATION, "-2562047h47m16.854775808s") < timedelta(0)


@pytest.mark.parametrize("raw", ["3000000h", "-3000000h", "2562047h47m16.854775808s", "9223372036854775808ns"])
def test_duration_past_int64_nanoseconds(raw):
    with pytest.raises(ValueError) as exc:
        coerce(TypeTag.DURATION, raw)
    assert str(exc.value) == f'invalid duration "{raw}"'



def test_timestamp_utc():
    assert coerce(TypeTag.TIMESTAMP, "2006-01-02T15:04:05Z") == datetime(
        2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc
    )


def test_timestamp_offset_and_fraction():
    value = coerce(TypeTag.TIMESTAMP, "2006-01-02t15:04:05.5+02:00")
    assert value.microsecond == 500000
    assert value.utcoffset() == timedelta(hours=2)


def test_timestamp_long_fraction_truncated():
    assert coerce(TypeTag.TIMESTAMP, "2006-01-02T15:04:05.123456789Z").microsecond == 123456


@pytest.mark.parametrize(
    "raw",
    ["", "2006-01-02", "2006-01-02 15:04:05Z", "2006-01-02T15:04:05", "2006-01-02T15:04Z", "06-01-02T15:04:05Z"],
)
def test_timestamp_rejects_non_rfc3339(raw):
    with pytest.raises(ValueError, match="invalid RFC3339 timestamp"):
        coerce(TypeTag.TIMESTAMP, raw)


def test_timestamp_out_of_range_field():
    with pytest.raises(ValueError, match="month must be in 1..12"):
        coerce(TypeTag.TIMESTAMP, "2006-13-02T15:04:05Z")


def test_pattern():
    pattern = coerce(TypeTag.PATTERN, r"\Adef\Z")
    assert isinstance(pattern, re.Pattern)
    assert pattern.match("def")
    with pytest.raises(ValueError, match="missing \\), unterminated subpattern"):
        coerce(TypeTag.PATTERN, "(")


def test_coerce_many_stops_at_first_bad_part():
    assert coerce_many(TypeTag.INT, ["1", "2", "3"]) == [1, 2, 3]
    with pytest.raises(ValueError) as exc:
        coerce_many(TypeTag.INT, ["1", "x", "y"])
    assert "'x'" in str(exc.value)


@pytest.mark.parametrize(
    "tag, value",
    [
        (TypeTag.INT, -17),
        (TypeTag.INT8, -128),
        (TypeTag.UINT64, 2**64 - 1),
        (TypeTag.FLOAT64, 0.1),
        (TypeTag.FLOAT64, -1e300),
        (TypeTag.FLOAT32, struct.unpack("f", struct.pack("f", 3.14))[0]),
        (TypeTag.BOOL, True),
        (TypeTag.BOOL, False),
        (TypeTag.STRING, "a b/c"),
        (TypeTag.BYTES, b"hello"),
        (TypeTag.BYTE, ord("z")),
        (TypeTag.RUNE, ord("ß")),
        (TypeTag.DURATION, timedelta(0)),
        (TypeTag.DURATION, timedelta(hours=1)),
        (TypeTag.DURATION, timedelta(hours=26, minutes=2, seconds=3, microseconds=4)),
        (TypeTag.DURATION, -timedelta(milliseconds=1500)),
        (TypeTag.DURATION, timedelta(microseconds=250)),
        (TypeTag.TIMESTAMP, datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)),
        (TypeTag.TIMESTAMP, datetime(2024, 5, 6, 7, 8, 9, 120000, tzinfo=timezone(timedelta(hours=-5)))),
    ],
)
def test_format_round_trip(tag, value):
    assert coerce(tag, format_value(tag, value)) == value


def test_format_round_trip_pattern():
    pattern = re.compile(r"^[A-z]*$")
    assert coerce(TypeTag.PATTERN, format_value(TypeTag.PATTERN, pattern)).pattern == pattern.pattern


def test_format_duration_shape():
    assert format_value(TypeTag.DURATION, timedelta(hours=1)) == "1h0m0s"
    assert format_value(TypeTag.DURATION, timedelta(seconds=1.5)) == "1.5s"
    assert format_value(TypeTag.TIMESTAMP, datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc)) == "2006-01-02T15:04:05Z"
