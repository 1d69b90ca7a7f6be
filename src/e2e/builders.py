import struct
import zlib
from pathlib import Path

from stardict.models import EntryField


def meaning(text: str) -> list:
    return [EntryField("m", text.encode("utf-8"))]


def write_dictzip(path: Path, payload: bytes, chunk_length: int, *, header_crc: bool = False,
                  ra_version: int = 1, ra_chunk_length: int | None = None, ra_copies: int = 1) -> Path:
    """gzip member with an RA subfield; one deflate stream, fully flushed per chunk.

    The ra_* arguments write a malformed RA subfield (wrong version, bogus chunk
    length, repeated subfield).
    """
    co = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    pieces = [payload[i:i + chunk_length] for i in range(0, len(payload), chunk_length)] or [b""]
    sizes, body = [], b""
    for i, piece in enumerate(pieces):
        last = i == len(pieces) - 1
        data = co.compress(piece) + co.flush(zlib.Z_FINISH if last else zlib.Z_FULL_FLUSH)
        sizes.append(len(data))
        body += data

    if ra_chunk_length is None:
        ra_chunk_length = chunk_length
    ra = struct.pack("<HHH", ra_version, ra_chunk_length, len(sizes)) + b"".join(struct.pack("<H", s) for s in sizes)
    extra = (b"RA" + struct.pack("<H", len(ra)) + ra) * ra_copies
    flags = 0x04 | (0x02 if header_crc else 0)
    header = b"\x1f\x8b\x08" + bytes([flags]) + struct.pack("<I", 0) + b"\x02\x03"
    header += struct.pack("<H", len(extra)) + extra
    if header_crc:
        header += struct.pack("<H", zlib.crc32(header) & 0xFFFF)
    trailer = struct.pack("<II", zlib.crc32(payload), len(payload) & 0xFFFFFFFF)
    path.write_bytes(header + body + trailer)
    return path
