from __future__ import annotations
import struct
from typing import List, Optional

from .errors import InvalidData
from .models import DecodedEntry, EntryField

_U32 = struct.Struct(">I")


def is_textual(type_: str) -> bool:
    """Lower-case types hold NUL-terminated text, everything else is length-prefixed."""
    return "a" <= type_ <= "z"


def _read_field(type_: str, data: bytes, pos: int, is_final: bool) -> tuple[EntryField, int]:
    end = len(data)
    if is_final:
        return EntryField(type_, data[pos:]), end

    if is_textual(type_):
        nul = data.find(b"\0", pos)
        if nul < 0:
            raise InvalidData(f"field {type_!r} is not terminated")
        return EntryField(type_, data[pos:nul]), nul + 1

    if pos + _U32.size > end:
        raise InvalidData(f"field {type_!r} has no length")
    (length,) = _U32.unpack_from(data, pos)
    pos += _U32.size
    if pos + length > end:
        raise InvalidData(f"field {type_!r} claims {length} bytes, {end - pos} left")
    return EntryField(type_, data[pos:pos + length]), pos + length


def decode_entry(data: bytes, same_type_sequence: Optional[str] = None) -> DecodedEntry:
    """
    Split an entry payload into typed fields.

    With `same_type_sequence` the types come from the schema and the last
    field spans to the end of the payload. Otherwise every field starts with
    its type byte and is terminated or length-prefixed.
    """
    fields: List[EntryField] = []
    pos = 0
    if same_type_sequence:
        last = len(same_type_sequence) - 1
        for i, type_ in enumerate(same_type_sequence):
            field, pos = _read_field(type_, data, pos, i == last)
            fields.append(field)
        return DecodedEntry(fields)

    while pos < len(data):
        type_ = chr(data[pos])
        field, pos = _read_field(type_, data, pos + 1, False)
        fields.append(field)
    return DecodedEntry(fields)


def encode_field(type_: str, data: bytes, *, mark_end: bool) -> bytes:
    """Inverse of _read_field for one field (without the type byte)."""
    if not mark_end:
        return data
    if is_textual(type_):
        if b"\0" in data:
            raise ValueError(f"text field {type_!r} must not contain NUL")
        return data + b"\0"
    return _U32.pack(len(data)) + data
