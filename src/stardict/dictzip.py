from __future__ import annotations
import io
import itertools
import logging
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Dict, Optional, Tuple

from .errors import InvalidData, InvalidHeader, IoError, NotSupported

log = logging.getLogger(__name__)

_MAGIC = b"\x1f\x8b"
_DEFLATE = 8

FHCRC = 0x02
FEXTRA = 0x04
FNAME = 0x08
FCOMMENT = 0x10

_U16 = struct.Struct("<H")
_FIXED = struct.Struct("<2sBBIBB")   # magic, method, flags, mtime, xfl, os
_RA_HEAD = struct.Struct("<HHH")     # version, chunk length, chunk count


@dataclass(frozen=True)
class GzipHeader:
    flags: int
    mtime: int
    extra_flags: int
    os: int
    name: Optional[bytes]
    comment: Optional[bytes]
    data_offset: int                       # first compressed byte
    chunk_length: Optional[int] = None     # only with an RA subfield
    chunk_sizes: Optional[Tuple[int, ...]] = None

    @property
    def is_dictzip(self) -> bool:
        return self.chunk_length is not None


class _HeaderReader:
    """Reads header bytes sequentially, remembering them for the header CRC."""
    def __init__(self, fp: BinaryIO) -> None:
        self.fp = fp
        self.seen = bytearray()

    def take(self, n: int) -> bytes:
        try:
            data = self.fp.read(n)
        except OSError as exc:
            raise IoError(str(exc)) from exc
        if len(data) != n:
            raise InvalidHeader("unexpected end of file in gzip header")
        self.seen += data
        return data

    def take_cstring(self) -> bytes:
        out = bytearray()
        while True:
            c = self.take(1)
            if c == b"\0":
                return bytes(out)
            out += c


def _parse_ra(extra: bytes) -> Tuple[Optional[int], Optional[Tuple[int, ...]]]:
    chunk_length = chunk_sizes = None
    found = False
    pos = 0
    while pos < len(extra):
        if pos + 4 > len(extra):
            raise InvalidHeader("truncated extra subfield")
        sid = extra[pos:pos + 2]
        (slen,) = _U16.unpack_from(extra, pos + 2)
        data = extra[pos + 4:pos + 4 + slen]
        if len(data) != slen:
            raise InvalidHeader("truncated extra subfield")
        pos += 4 + slen
        if sid != b"RA":
            continue
        if found:
            raise InvalidHeader("multiple RA subfields")
        found = True

        if len(data) < _RA_HEAD.size:
            raise InvalidHeader("RA subfield too short")
        version, chunk_length, count = _RA_HEAD.unpack_from(data)
        if version != 1:
            raise InvalidHeader(f"unsupported RA version {version}")
        if chunk_length == 0:
            raise InvalidHeader("RA chunk length is zero")
        if len(data) < _RA_HEAD.size + 2 * count:
            raise InvalidHeader("RA chunk table truncated")
        chunk_sizes = struct.unpack_from(f"<{count}H", data, _RA_HEAD.size)
    return chunk_length, chunk_sizes


def parse_header(fp: BinaryIO) -> GzipHeader:
    """Parse a gzip member header starting at the current position of `fp`."""
    r = _HeaderReader(fp)
    magic, method, flags, mtime, xfl, os_ = _FIXED.unpack(r.take(_FIXED.size))
    if magic != _MAGIC:
        raise InvalidHeader("not in gzip format")
    if method != _DEFLATE:
        raise InvalidHeader(f"unsupported compression method {method}")

    chunk_length = chunk_sizes = None
    if flags & FEXTRA:
        (xlen,) = _U16.unpack(r.take(2))
        chunk_length, chunk_sizes = _parse_ra(r.take(xlen))

    name = r.take_cstring() if flags & FNAME else None
    comment = r.take_cstring() if flags & FCOMMENT else None

    if flags & FHCRC:
        expected = zlib.crc32(bytes(r.seen)) & 0xFFFF
        (crc,) = _U16.unpack(r.take(2))
        if crc != expected:
            raise InvalidHeader("header checksum mismatch")

    return GzipHeader(
        flags=flags, mtime=mtime, extra_flags=xfl, os=os_,
        name=name, comment=comment, data_offset=len(r.seen),
        chunk_length=chunk_length, chunk_sizes=chunk_sizes,
    )


class DictzipReader:
    """
    Random access to a dictzip file.

    Compressed chunks are inflated on first touch and kept; nothing is ever
    inflated twice. One instance must not be shared between threads.
    """
    def __init__(self, fp: BinaryIO, header: GzipHeader | None = None) -> None:
        if header is None:
            fp.seek(0)
            header = parse_header(fp)
        if not header.is_dictzip:
            raise NotSupported("gzip file has no RA subfield")
        self._fp = fp
        self.header = header
        self.chunk_length: int = header.chunk_length  # type: ignore[assignment]
        self._sizes = header.chunk_sizes or ()
        self._offsets = list(itertools.accumulate(self._sizes, initial=header.data_offset))
        self._chunks: Dict[int, bytes] = {}
        self._last_chunk_size: Optional[int] = None
        self._pos = 0

    # ------------- chunk cache -------------

    @property
    def chunk_count(self) -> int:
        return len(self._sizes)

    @property
    def last_chunk_size(self) -> Optional[int]:
        return self._last_chunk_size

    @property
    def size(self) -> Optional[int]:
        """Uncompressed size, once the last chunk has been seen."""
        if not self._sizes:
            return 0
        if self._last_chunk_size is None:
            return None
        return (self.chunk_count - 1) * self.chunk_length + self._last_chunk_size

    def _chunk(self, chunk_id: int) -> bytes:
        data = self._chunks.get(chunk_id)
        if data is not None:
            return data

        try:
            self._fp.seek(self._offsets[chunk_id])
            compressed = self._fp.read(self._sizes[chunk_id])
        except OSError as exc:
            raise IoError(str(exc)) from exc
        if len(compressed) != self._sizes[chunk_id]:
            raise InvalidData(f"chunk {chunk_id} is truncated")

        try:
            data = zlib.decompressobj(-zlib.MAX_WBITS).decompress(compressed, self.chunk_length)
        except zlib.error as exc:
            raise InvalidData(f"chunk {chunk_id}: {exc}") from exc

        is_last = chunk_id == self.chunk_count - 1
        if is_last:
            self._last_chunk_size = len(data)
        elif len(data) != self.chunk_length:
            raise InvalidData(f"chunk {chunk_id} is shorter than the chunk length")

        log.debug("inflated chunk %d (%d -> %d bytes)", chunk_id, len(compressed), len(data))
        self._chunks[chunk_id] = data
        return data

    # ------------- random access -------------

    def read_at(self, offset: int, n: int) -> bytes:
        out = bytearray()
        while n > 0:
            chunk_id, chunk_offset = divmod(offset, self.chunk_length)
            if chunk_id >= self.chunk_count:
                break
            data = self._chunk(chunk_id)
            piece = data[chunk_offset:chunk_offset + n]
            if not piece:
                break
            out += piece
            offset += len(piece)
            n -= len(piece)
        return bytes(out)

    # ------------- file-like API -------------

    def read(self, n: int = -1) -> bytes:
        if n is None or n < 0:
            out = bytearray()
            while True:
                piece = self.read_at(self._pos, self.chunk_length)
                if not piece:
                    return bytes(out)
                out += piece
                self._pos += len(piece)
        data = self.read_at(self._pos, n)
        self._pos += len(data)
        return data

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            pos = offset
        elif whence == io.SEEK_CUR:
            pos = self._pos + offset
        elif whence == io.SEEK_END:
            size = self.size
            if size is None:
                raise NotSupported("the uncompressed size is not known yet")
            pos = size + offset
        else:
            raise ValueError(f"invalid whence {whence}")
        if pos < 0:
            raise ValueError("negative seek position")
        self._pos = pos
        return pos

    def tell(self) -> int:
        return self._pos

    def close(self) -> None:
        self._chunks.clear()
        self._fp.close()

    def __enter__(self) -> "DictzipReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
