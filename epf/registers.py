"""
Register constants.

Non-mandatory box registers (R4..R9) hold typed constants. The node hands them
out as hex strings of the serialized constant: one type byte followed by the
value. Only the primitive types a predicate needs to inspect are decoded;
anything else is kept as raw bytes under ``ConstantType.OTHER``.

Encoding of the supported types:

    0x01 Boolean      1 byte (0 or 1)
    0x02 Byte         1 byte, signed
    0x03 Short        ZigZag + VLQ
    0x04 Int          ZigZag + VLQ
    0x05 Long         ZigZag + VLQ
    0x0e Coll[Byte]   VLQ length + bytes
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union


class ConstantType(Enum):
    """Register constant types, keyed by their serialized type code."""
    BOOLEAN = 0x01
    BYTE = 0x02
    SHORT = 0x03
    INT = 0x04
    LONG = 0x05
    COLL_BYTE = 0x0E
    OTHER = -1

    @property
    def is_integer(self) -> bool:
        return self in (ConstantType.BYTE, ConstantType.SHORT, ConstantType.INT, ConstantType.LONG)


_BOUNDS = {
    ConstantType.BYTE: (-(2 ** 7), 2 ** 7 - 1),
    ConstantType.SHORT: (-(2 ** 15), 2 ** 15 - 1),
    ConstantType.INT: (-(2 ** 31), 2 ** 31 - 1),
    ConstantType.LONG: (-(2 ** 63), 2 ** 63 - 1),
}


@dataclass(frozen=True)
class Constant:
    """A typed constant held in a box register."""
    tpe: ConstantType
    value: Any

    def __post_init__(self) -> None:
        if self.tpe in _BOUNDS:
            # bool is an int subclass; keep Boolean and integer types apart
            if isinstance(self.value, bool) or not isinstance(self.value, int):
                raise TypeError(f"{self.tpe.name} constant requires an int, got {type(self.value).__name__}")
            lo, hi = _BOUNDS[self.tpe]
            if not lo <= self.value <= hi:
                raise ValueError(f"{self.tpe.name} constant out of range: {self.value}")
        elif self.tpe is ConstantType.BOOLEAN:
            if not isinstance(self.value, bool):
                raise TypeError("BOOLEAN constant requires a bool")
        elif not isinstance(self.value, (bytes, bytearray)):
            raise TypeError(f"{self.tpe.name} constant requires bytes")
        elif isinstance(self.value, bytearray):
            object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def long(cls, value: int) -> "Constant":
        return cls(ConstantType.LONG, value)

    @classmethod
    def coll_byte(cls, value: bytes) -> "Constant":
        return cls(ConstantType.COLL_BYTE, value)

    def to_hex(self) -> str:
        return encode_constant(self).hex()


# =============================================================================
# VLQ / ZIGZAG
# =============================================================================

def _write_vlq(n: int) -> bytes:
    if n < 0:
        raise ValueError("VLQ requires a non-negative integer")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def _read_vlq(data: bytes, pos: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated VLQ integer")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if not b & 0x80:
            return result, pos
        shift += 7
        if shift > 70:
            raise ValueError("VLQ integer too long")


def _zigzag(n: int) -> int:
    return (n << 1) ^ (n >> 63)


def _unzigzag(z: int) -> int:
    return (z >> 1) ^ -(z & 1)


# =============================================================================
# CODEC
# =============================================================================

def decode_constant(data: Union[str, bytes]) -> Constant:
    """Decode a serialized register constant.

    Accepts either raw bytes or the node's hex string. Raises ``ValueError``
    for empty, truncated or trailing input.
    """
    if isinstance(data, str):
        try:
            raw = bytes.fromhex(data)
        except ValueError as e:
            raise ValueError(f"register value is not valid hex: {e}") from e
    else:
        raw = bytes(data)
    if not raw:
        raise ValueError("empty register value")

    code = raw[0]
    try:
        tpe = ConstantType(code)
    except ValueError:
        return Constant(ConstantType.OTHER, raw)

    pos = 1
    if tpe is ConstantType.BOOLEAN:
        if len(raw) < 2:
            raise ValueError("truncated Boolean constant")
        if raw[1] not in (0, 1):
            raise ValueError(f"invalid Boolean byte: {raw[1]}")
        value: Any = raw[1] == 1
        pos = 2
    elif tpe is ConstantType.BYTE:
        if len(raw) < 2:
            raise ValueError("truncated Byte constant")
        value = int.from_bytes(raw[1:2], "big", signed=True)
        pos = 2
    elif tpe is ConstantType.COLL_BYTE:
        length, pos = _read_vlq(raw, pos)
        if pos + length > len(raw):
            raise ValueError("truncated Coll[Byte] constant")
        value = raw[pos:pos + length]
        pos += length
    else:
        z, pos = _read_vlq(raw, pos)
        value = _unzigzag(z)
        lo, hi = _BOUNDS[tpe]
        if not lo <= value <= hi:
            raise ValueError(f"{tpe.name} constant out of range: {value}")

    if pos != len(raw):
        raise ValueError(f"trailing bytes after {tpe.name} constant")
    return Constant(tpe, value)


def encode_constant(constant: Constant) -> bytes:
    """Serialize a constant back to its register byte form."""
    tpe = constant.tpe
    if tpe is ConstantType.OTHER:
        return constant.value
    head = bytes([tpe.value])
    if tpe is ConstantType.BOOLEAN:
        return head + (b"\x01" if constant.value else b"\x00")
    if tpe is ConstantType.BYTE:
        return head + constant.value.to_bytes(1, "big", signed=True)
    if tpe is ConstantType.COLL_BYTE:
        return head + _write_vlq(len(constant.value)) + constant.value
    return head + _write_vlq(_zigzag(constant.value))
