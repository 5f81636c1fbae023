"""
Typed decoding of raw ABIF data items.

A :class:`Template` says how to reinterpret a payload: big-endian unsigned
integers, ASCII strings in one of three layouts, raw bit groups, or IEEE-754
single-precision floats rebuilt from their bit strings.

Integers are always decoded as unsigned. Some ABIF types are nominally
signed (``short``, ``long``), but the values found in practice are
non-negative and there is no separate signed path.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Dict, List, Optional

_UINT_CODES = {1: "B", 2: "H", 4: "I"}


class DecodeError(ValueError):
    """Payload does not fit the requested template."""


class TemplateKind(enum.Enum):
    UINT = "uint"
    CHARS = "chars"
    PSTRING = "pstring"
    CSTRING = "cstring"
    BITS = "bits"
    FLOAT32 = "float32"


@dataclass(frozen=True)
class Template:
    kind: TemplateKind
    width: int = 1
    count: Optional[int] = None

    @classmethod
    def uint(cls, width: int, count: Optional[int] = None) -> "Template":
        if width not in _UINT_CODES:
            raise ValueError(f"unsupported integer width {width}; expected 1, 2 or 4")
        return cls(TemplateKind.UINT, width, count)

    @classmethod
    def bits(cls, width: int, count: Optional[int] = None) -> "Template":
        if width <= 0:
            raise ValueError("bit group width must be positive")
        return cls(TemplateKind.BITS, width, count)


UINT8 = Template.uint(1, 1)
UINT16 = Template.uint(2, 1)
UINT32 = Template.uint(4, 1)
UINT8_ARRAY = Template.uint(1)
UINT16_ARRAY = Template.uint(2)
UINT32_ARRAY = Template.uint(4)
CHARS = Template(TemplateKind.CHARS)
PSTRING = Template(TemplateKind.PSTRING)
CSTRING = Template(TemplateKind.CSTRING)
BITS = Template(TemplateKind.BITS, 0)
FLOAT32 = Template(TemplateKind.FLOAT32, 4)
FLOAT32_BITS = Template.bits(32)

TEMPLATES: Dict[str, Template] = {
    "u8": UINT8,
    "u16": UINT16,
    "u32": UINT32,
    "u8[]": UINT8_ARRAY,
    "u16[]": UINT16_ARRAY,
    "u32[]": UINT32_ARRAY,
    "chars": CHARS,
    "pstring": PSTRING,
    "cstring": CSTRING,
    "bits": BITS,
    "float32": FLOAT32,
}


def _element_count(raw: bytes, width: int, count: Optional[int]) -> int:
    if count is None:
        if len(raw) % width:
            raise DecodeError(
                f"payload of {len(raw)} bytes is not a multiple of {width}-byte elements"
            )
        return len(raw) // width
    if len(raw) < width * count:
        raise DecodeError(
            f"payload of {len(raw)} bytes is shorter than {count} x {width}-byte elements"
        )
    return count


def _bit_string(raw: bytes) -> str:
    return "".join(f"{byte:08b}" for byte in raw)


def _decode_bits(raw: bytes, width: int, count: Optional[int]) -> List[str]:
    bits = _bit_string(raw)
    if width == 0:
        return [bits]
    if count is None:
        if len(bits) % width:
            raise DecodeError(
                f"payload of {len(bits)} bits is not a multiple of {width}-bit groups"
            )
        count = len(bits) // width
    elif len(bits) < width * count:
        raise DecodeError(
            f"payload of {len(bits)} bits is shorter than {count} x {width}-bit groups"
        )
    return [bits[i * width : (i + 1) * width] for i in range(count)]


def _text(raw: bytes) -> str:
    return raw.decode("latin-1")


def decode(raw: bytes, template: Template) -> list:
    """Decode ``raw`` according to ``template``; always returns a list."""

    kind = template.kind
    if kind is TemplateKind.UINT:
        n = _element_count(raw, template.width, template.count)
        fmt = f">{n}{_UINT_CODES[template.width]}"
        return list(struct.unpack(fmt, raw[: n * template.width]))

    if kind is TemplateKind.CHARS:
        if template.count is not None:
            if len(raw) < template.count:
                raise DecodeError(
                    f"payload of {len(raw)} bytes is shorter than {template.count} characters"
                )
            raw = raw[: template.count]
        # Trailing NULs and spaces are padding.
        return [_text(raw).rstrip(" \x00")]

    if kind is TemplateKind.PSTRING:
        if not raw:
            raise DecodeError("empty payload has no Pascal string length byte")
        length = raw[0]
        if length > len(raw) - 1:
            raise DecodeError(
                f"Pascal string declares {length} characters but only "
                f"{len(raw) - 1} are present"
            )
        return [_text(raw[1 : 1 + length])]

    if kind is TemplateKind.CSTRING:
        end = raw.find(b"\x00")
        return [_text(raw if end < 0 else raw[:end])]

    if kind is TemplateKind.BITS:
        return _decode_bits(raw, template.width, template.count)

    if kind is TemplateKind.FLOAT32:
        n = _element_count(raw, 4, template.count)
        return [
            _ieee_single_prec_float(bits)
            for bits in _decode_bits(raw[: n * 4], 32, n)
        ]

    raise DecodeError(f"unsupported template kind {kind!r}")


def decode_float32(raw: bytes) -> List[float]:
    return decode(raw, FLOAT32)


def _bit_string_as_unsigned_integer(bits: str) -> int:
    """``'10000101'`` -> ``133``."""
    value = 0
    last = len(bits) - 1
    for i, bit in enumerate(bits):
        value += int(bit) * 2 ** (last - i)
    return value


def _bit_string_as_decimal_fraction(bits: str) -> float:
    """``'010.01'`` -> ``2.25``."""
    whole, _, frac = bits.partition(".")
    value: float = _bit_string_as_unsigned_integer(whole)
    for j, bit in enumerate(frac):
        value += int(bit) * 2.0 ** (-j - 1)
    return value


def _ieee_single_prec_float(bits: str) -> float:
    """
    Rebuild an IEEE-754 single-precision value from its 32-bit string.

    Layout is ``<sign:1><exponent:8><mantissa:23>`` and the value is
    ``sign * 1.mantissa * 2**(exponent - 127)``. An all-zero exponent and
    mantissa is signed zero. Subnormals, infinities and NaN get no other
    special treatment.
    """
    if len(bits) != 32 or set(bits) - {"0", "1"}:
        raise DecodeError(f"expected a 32-character bit string, got {bits!r}")
    sign = 1 if bits[0] == "0" else -1
    if "1" not in bits[1:]:
        return sign * 0.0
    exponent = _bit_string_as_unsigned_integer(bits[1:9])
    mantissa = _bit_string_as_decimal_fraction("1." + bits[9:32])
    return sign * mantissa * 2.0 ** (exponent - 127)


__all__ = [
    "BITS",
    "CHARS",
    "CSTRING",
    "DecodeError",
    "FLOAT32",
    "FLOAT32_BITS",
    "PSTRING",
    "TEMPLATES",
    "Template",
    "TemplateKind",
    "UINT8",
    "UINT8_ARRAY",
    "UINT16",
    "UINT16_ARRAY",
    "UINT32",
    "UINT32_ARRAY",
    "decode",
    "decode_float32",
]
