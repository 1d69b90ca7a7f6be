from __future__ import annotations
import gzip
import logging
import os
import struct
import zlib
from typing import List

from . import config as CFG
from .errors import FileNotFound, InvalidData, IoError
from .info import sibling
from .models import DictionaryInfo, IndexEntry, SynonymEntry

log = logging.getLogger(__name__)

_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")


def _read_file(path: str, *, gzipped: bool = False) -> bytes:
    try:
        if gzipped:
            with gzip.open(path, "rb") as f:
                return f.read()
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise FileNotFound("no such file", path=path) from None
    except (EOFError, gzip.BadGzipFile, zlib.error) as exc:
        raise InvalidData(f"corrupt gzip stream: {exc}", path=path) from exc
    except OSError as exc:
        raise IoError(str(exc), path=path) from exc


def _read_name(data: bytes, pos: int, path: str) -> tuple[str, int]:
    end = data.find(b"\0", pos)
    if end < 0:
        raise InvalidData("unterminated word at end of file", path=path)
    try:
        return data[pos:end].decode("utf-8"), end + 1
    except UnicodeDecodeError:
        raise InvalidData(f"invalid UTF-8 in word at offset {pos}", path=path) from None


def parse_index(data: bytes, offset_bits: int = CFG.DEFAULT_OFFSET_BITS, *, path: str = "") -> List[IndexEntry]:
    """Decode .idx records: name NUL, big-endian offset (32/64 bits), big-endian u32 size."""
    off_struct = _U64 if offset_bits == 64 else _U32
    record_tail = off_struct.size + _U32.size

    entries: List[IndexEntry] = []
    pos, n = 0, len(data)
    while pos < n:
        name, pos = _read_name(data, pos, path)
        if pos + record_tail > n:
            raise InvalidData(f"truncated record for {name!r}", path=path)
        (offset,) = off_struct.unpack_from(data, pos)
        (size,) = _U32.unpack_from(data, pos + off_struct.size)
        pos += record_tail
        entries.append(IndexEntry(name, offset, size))
    return entries


def parse_synonyms(data: bytes, *, path: str = "") -> List[SynonymEntry]:
    """Decode .syn records: word NUL, big-endian u32 index into the main index."""
    out: List[SynonymEntry] = []
    pos, n = 0, len(data)
    while pos < n:
        word, pos = _read_name(data, pos, path)
        if pos + _U32.size > n:
            raise InvalidData(f"truncated record for {word!r}", path=path)
        (target,) = _U32.unpack_from(data, pos)
        pos += _U32.size
        out.append(SynonymEntry(word, target))
    return out


def index_path(info: DictionaryInfo) -> tuple[str, bool]:
    """Locate .idx, falling back to .idx.gz. Returns (path, gzipped)."""
    plain = sibling(info, ".idx")
    if os.path.exists(plain):
        return plain, False
    packed = plain + ".gz"
    if os.path.exists(packed):
        return packed, True
    raise FileNotFound("index file not found (.idx or .idx.gz)", path=info.path)


def load_index(info: DictionaryInfo) -> List[IndexEntry]:
    path, gzipped = index_path(info)
    entries = parse_index(_read_file(path, gzipped=gzipped), info.index_offset_bits, path=path)
    if len(entries) != info.word_count:
        log.info("%s: index holds %d words, .ifo declares %d", path, len(entries), info.word_count)
    return entries


def load_synonyms(info: DictionaryInfo) -> List[SynonymEntry]:
    """Load the .syn file if the dictionary has one."""
    path = sibling(info, ".syn")
    if not os.path.exists(path):
        return []
    return parse_synonyms(_read_file(path), path=path)
