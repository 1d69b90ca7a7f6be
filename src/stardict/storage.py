from __future__ import annotations
import enum
import gzip
import logging
import mmap
import os
import zlib
from typing import BinaryIO, Optional

from .dictzip import DictzipReader, parse_header
from .errors import FileNotFound, InvalidData, IoError
from .info import sibling
from .models import DictionaryInfo

log = logging.getLogger(__name__)


class Backend(enum.Enum):
    MMAP = "mmap"          # plain .dict mapped read-only
    BUFFER = "buffer"      # .dict.dz without RA, decompressed up front
    DICTZIP = "dictzip"    # .dict.dz with random access chunks


class DictStore:
    """Byte source behind a dictionary's .dict file."""

    def __init__(self, path: str, backend: Backend, *,
                 fp: Optional[BinaryIO] = None,
                 mm: Optional[mmap.mmap] = None,
                 buffer: bytes = b"",
                 reader: Optional[DictzipReader] = None) -> None:
        self.path = path
        self.backend = backend
        self._fp = fp
        self._mm = mm
        self._buffer = buffer
        self._reader = reader

    @classmethod
    def open(cls, info: DictionaryInfo) -> "DictStore":
        """Open .dict, or .dict.dz when there is no plain one."""
        plain = sibling(info, ".dict")
        packed = plain + ".dz"
        try:
            if os.path.exists(plain):
                return cls._open_plain(plain)
            if os.path.exists(packed):
                return cls._open_packed(packed)
        except OSError as exc:
            raise IoError(str(exc), path=info.path) from exc
        raise FileNotFound("data file not found (.dict or .dict.dz)", path=info.path)

    @classmethod
    def _open_plain(cls, path: str) -> "DictStore":
        fp = open(path, "rb")
        if os.fstat(fp.fileno()).st_size == 0:
            fp.close()
            return cls(path, Backend.BUFFER)
        try:
            mm = mmap.mmap(fp.fileno(), length=0, access=mmap.ACCESS_READ)
        except Exception:
            fp.close()
            raise
        return cls(path, Backend.MMAP, fp=fp, mm=mm)

    @classmethod
    def _open_packed(cls, path: str) -> "DictStore":
        fp = open(path, "rb")
        try:
            header = parse_header(fp)
        except Exception:
            fp.close()
            raise
        if header.is_dictzip:
            return cls(path, Backend.DICTZIP, reader=DictzipReader(fp, header))

        log.info("%s: no RA subfield, decompressing the whole file", path)
        try:
            fp.seek(0)
            with gzip.GzipFile(fileobj=fp, mode="rb") as gz:
                data = gz.read()
        except (EOFError, gzip.BadGzipFile, zlib.error) as exc:
            raise InvalidData(f"corrupt gzip stream: {exc}", path=path) from exc
        finally:
            fp.close()
        return cls(path, Backend.BUFFER, buffer=data)

    def read_at(self, offset: int, size: int) -> bytes:
        if self.backend is Backend.MMAP:
            return self._mm[offset:offset + size]
        if self.backend is Backend.DICTZIP:
            return self._reader.read_at(offset, size)
        return self._buffer[offset:offset + size]

    def close(self) -> None:
        if self._mm is not None:
            self._mm.close()
            self._mm = None
        if self._fp is not None:
            self._fp.close()
            self._fp = None
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        self._buffer = b""
