"""Parsing of DBC signal lines and bit-level access to CAN payloads."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

log = logging.getLogger(__name__)

_FIELD_RE = re.compile(
    r'^([^ ]+) +([^: ]+).* *: *(\d*)\|(\d*)@(\d)([+-]) *'
    r'\(([\d.]*),(-?[\d.]*)\) *\[([^|]*)\|([^\]]*)\] *"([^"]*)"'
)
_LINE_BREAK_RE = re.compile(r"\n|\r\n|\r")


@dataclass(frozen=True)
class Field:
    """One signal inside a CAN payload."""

    name: str
    is_signed: bool = False
    is_big_endian: bool = False
    bitpos: int = 0
    length: int = 0
    factor: float = 1.0
    offset: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    unit: str = ""


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _motorola_start(bitpos: int, length: int) -> int:
    """Translate a Motorola start bit into the bit position the reader starts at."""
    byte, local = divmod(bitpos, 8)
    position = byte * 8 + (7 - local) + length - 1
    byte, local = divmod(position, 8)
    return byte * 8 + (7 - local)


def parse_field(text: str) -> Field:
    """Parse one ``SG_`` line; raise ValueError if it is not one."""
    match = _FIELD_RE.match(text)
    if match is None:
        raise ValueError(f"cannot parse signal line {text!r}")
    is_big_endian = _to_int(match.group(5)) == 0
    bitpos = _to_int(match.group(3))
    length = _to_int(match.group(4))
    if is_big_endian:
        bitpos = _motorola_start(bitpos, length)
    return Field(
        name=match.group(2),
        is_signed=match.group(6) == "-",
        is_big_endian=is_big_endian,
        bitpos=bitpos,
        length=length,
        factor=_to_float(match.group(7)),
        offset=_to_float(match.group(8)),
        minimum=_to_float(match.group(9)),
        maximum=_to_float(match.group(10)),
        unit=match.group(11),
    )


def parse_fields(text: str) -> dict[str, Field]:
    """Parse several ``SG_`` lines, skipping those that do not parse."""
    fields: dict[str, Field] = {}
    for line in _LINE_BREAK_RE.split(text):
        try:
            field = parse_field(line)
        except ValueError:
            log.debug("Cannot parse %r", line)
            continue
        if field.name:
            fields[field.name] = field
    return fields


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _check_index(data, byte: int) -> None:
    if byte < 0 or byte >= len(data):
        raise IndexError(f"bit access outside payload of {len(data)} bytes")


def _sign_extend(value: int, bits: int) -> int:
    if 0 < bits < 32 and value & (1 << (bits - 1)):
        value |= 0xFFFFFFFF ^ ((1 << bits) - 1)
    return _to_int32(value)


def _gather_bits(data, bitpos: int, length: int, big_endian: bool) -> tuple[int, int]:
    result = 0
    bits_read = 0
    while length > 0:
        byte, local = divmod(bitpos, 8)
        _check_index(data, byte)
        count = min(length, 8 - local)
        result += ((data[byte] >> local) & ((1 << count) - 1)) << bits_read
        bits_read += count
        length -= count
        bitpos += count
        if big_endian:
            bitpos -= 16
    return result, bits_read


def read_field(data, field: Field) -> float:
    """Read ``field`` from ``data`` and scale it."""
    result, bits_read = _gather_bits(data, field.bitpos, field.length, field.is_big_endian)
    if field.is_big_endian:
        if field.length == 16:
            raw = result & 0xFFFF
            result = ((raw & 0xFF) << 8) | (raw >> 8)
        elif field.length != 1:
            log.debug("no idea how to fix endianess... %s", field.name)
    result = _to_int32(result)
    if field.is_signed:
        result = _sign_extend(result, bits_read)
    return result * field.factor + field.offset


def write_field(data: bytearray, field: Field, value: float) -> None:
    """Store ``value`` into ``field`` of the mutable payload ``data``."""
    raw = int((value - field.offset) / field.factor)
    bits_written = 0
    bitpos = field.bitpos
    length = field.length
    while length > 0:
        byte, local = divmod(bitpos, 8)
        _check_index(data, byte)
        count = min(length, 8 - local)
        mask = ((1 << count) - 1) << local
        bits = (raw >> bits_written) & ((1 << count) - 1)
        data[byte] = (data[byte] & ~mask & 0xFF) | (bits << local)
        bits_written += count
        length -= count
        bitpos += count
        if field.is_big_endian:
            bitpos -= 16


def read_motorola_field(data, bitpos, length, factor=1.0, offset=0.0, signed=False) -> float:
    """Read a field whose bytes run downwards from ``bitpos``, without byte swapping."""
    result, bits_read = _gather_bits(data, bitpos, length, True)
    result = _to_int32(result)
    if signed:
        result = _sign_extend(result, bits_read)
    return result * factor + offset