from __future__ import annotations
import logging
import os
import struct
from typing import BinaryIO, Iterable, List, Optional, Tuple

from .collation import raw_sort_key
from .decoder import encode_field
from .info import format_info
from .models import DictionaryInfo, EntryField, Version

log = logging.getLogger(__name__)

_U32 = struct.Struct(">I")


def write_ifo(info: DictionaryInfo, path: Optional[str] = None) -> str:
    """Serialize `info` to `path` (default: info.path)."""
    path = path or info.path
    with open(path, "wb") as f:
        f.write(format_info(info))
    return path


class Generator:
    """
    Write a .dict/.idx/.ifo triple (and optionally .syn).

    Entries go to the index in the order they are finished, so callers feed
    words already sorted in raw order (see `raw_sort_key`).

    Low-level use:
        g.begin_entry(); g.write_type("m"); g.write_string("text", True)
        g.finish_entry("word")
    """
    def __init__(self, base: str, *, book_name: str,
                 same_type_sequence: Optional[str] = None,
                 version: Version = Version.V3_0_0,
                 author: Optional[str] = None,
                 email: Optional[str] = None,
                 website: Optional[str] = None,
                 description: Optional[str] = None,
                 date: Optional[str] = None,
                 collation_locale: Optional[str] = None) -> None:
        if base.lower().endswith(".ifo"):
            base = base[:-4]
        self.base = base
        self.book_name = book_name
        self.same_type_sequence = same_type_sequence
        self.version = version
        self._meta = dict(author=author, email=email, website=website,
                          description=description, date=date,
                          collation_locale=collation_locale)
        os.makedirs(os.path.dirname(os.path.abspath(base)), exist_ok=True)
        self._dict: BinaryIO = open(base + ".dict", "wb")
        self._idx: BinaryIO = open(base + ".idx", "wb")
        self._synonyms: List[Tuple[str, int]] = []
        self._entry_start: Optional[int] = None
        self.word_count = 0
        self.info: Optional[DictionaryInfo] = None

    # ------------- entry writing -------------

    def begin_entry(self) -> None:
        self._entry_start = self._dict.tell()

    def write_type(self, type_: str) -> None:
        self._dict.write(type_.encode("ascii"))

    def write_raw(self, data: bytes, mark_end: bool) -> None:
        if mark_end:
            self._dict.write(_U32.pack(len(data)))
        self._dict.write(data)

    def write_string(self, s: str, mark_end: bool) -> None:
        self._dict.write(s.encode("utf-8"))
        if mark_end:
            self._dict.write(b"\0")

    def finish_entry(self, word: str) -> None:
        if self._entry_start is None:
            raise RuntimeError("finish_entry() without begin_entry()")
        start, end = self._entry_start, self._dict.tell()
        if start > 0xFFFFFFFF:
            raise ValueError("dictionary data exceeds 32-bit offsets")
        self._idx.write(word.encode("utf-8") + b"\0")
        self._idx.write(_U32.pack(start))
        self._idx.write(_U32.pack(end - start))
        self._entry_start = None
        self.word_count += 1

    def add_entry(self, word: str, fields: Iterable[EntryField]) -> None:
        """Write one entry honouring the schema, if any."""
        fields = list(fields)
        sts = self.same_type_sequence
        if sts and "".join(f.type for f in fields) != sts:
            raise ValueError(f"fields of {word!r} do not follow the sequence {sts!r}")

        self.begin_entry()
        for i, f in enumerate(fields):
            if sts:
                self._dict.write(encode_field(f.type, f.data, mark_end=i < len(fields) - 1))
            else:
                self.write_type(f.type)
                self._dict.write(encode_field(f.type, f.data, mark_end=True))
        self.finish_entry(word)

    def add_synonym(self, word: str, target: int) -> None:
        self._synonyms.append((word, target))

    # ------------- finish -------------

    def write_synonyms(self) -> None:
        """Write the collected synonyms to .syn in raw order."""
        with open(self.base + ".syn", "wb") as f:
            for word, target in sorted(self._synonyms, key=lambda p: raw_sort_key(p[0])):
                f.write(word.encode("utf-8") + b"\0")
                f.write(_U32.pack(target))

    def finish(self) -> DictionaryInfo:
        """Close the data files and write the .ifo describing them."""
        self._dict.close()
        self._idx.close()
        if self._synonyms:
            self.write_synonyms()

        info = DictionaryInfo(
            path=os.path.abspath(self.base + ".ifo"),
            version=self.version,
            book_name=self.book_name,
            word_count=self.word_count,
            synonym_word_count=len(self._synonyms),
            index_filesize=os.path.getsize(self.base + ".idx"),
            index_offset_bits=32,
            same_type_sequence=self.same_type_sequence,
            **self._meta,
        )
        write_ifo(info)
        log.info("Wrote %s (%d words)", info.path, info.word_count)
        self.info = info
        return info

    def close(self) -> None:
        """Abandon the dictionary being written."""
        self._dict.close()
        self._idx.close()

    def __enter__(self) -> "Generator":
        return self

    def __exit__(self, exc_type, *exc) -> None:
        if exc_type is None:
            self.finish()
        else:
            self.close()


def write_dictionary(base: str, entries: Iterable[Tuple[str, Iterable[EntryField]]], *,
                     synonyms: Iterable[Tuple[str, int]] = (), sort: bool = True,
                     **info) -> DictionaryInfo:
    """
    Build a dictionary from (word, fields) pairs in one go.

    With `sort`, entries are put into raw order first; synonym targets refer
    to positions after sorting.
    """
    items = list(entries)
    if sort:
        items.sort(key=lambda p: raw_sort_key(p[0]))
    with Generator(base, **info) as g:
        for word, fields in items:
            g.add_entry(word, fields)
        for word, target in synonyms:
            g.add_synonym(word, target)
    return g.info  # type: ignore[return-value]
