from pathlib import Path
import gzip
import struct

import pytest

from stardict.dictionary import Dictionary
from stardict.errors import FileNotFound, InvalidData
from stardict.info import parse_info
from stardict.loader import load_index, load_synonyms, parse_index, parse_synonyms


def _record(name: str, offset: int, size: int, bits: int = 32) -> bytes:
    fmt = ">QI" if bits == 64 else ">II"
    return name.encode("utf-8") + b"\0" + struct.pack(fmt, offset, size)


def test_parse_index_32_and_64_bit():
    data = _record("a", 0, 3) + _record("b", 3, 4)
    assert [(e.name, e.data_offset, e.data_size) for e in parse_index(data)] == [("a", 0, 3), ("b", 3, 4)]

    big = _record("huge", 1 << 40, 7, bits=64)
    (e,) = parse_index(big, 64)
    assert e.data_offset == 1 << 40 and e.data_size == 7


def test_record_count_matches_names():
    names = ["één", "two", "three"]
    data = b"".join(_record(n, i, 1) for i, n in enumerate(names))
    entries = parse_index(data)
    assert len(entries) == len(names)
    assert [e.name for e in entries] == names


@pytest.mark.parametrize("data", [
    _record("a", 0, 3)[:-1],          # size cut short
    _record("a", 0, 3) + b"b",        # name without terminator
    b"\xff\xfe\0" + b"\0" * 8,        # not UTF-8
])
def test_truncated_or_corrupt_index(data: bytes):
    with pytest.raises(InvalidData):
        parse_index(data, path="x.idx")


def test_synonym_records():
    data = b"colour\0" + struct.pack(">I", 2) + b"grey\0" + struct.pack(">I", 5)
    assert [(s.word, s.target) for s in parse_synonyms(data)] == [("colour", 2), ("grey", 5)]
    with pytest.raises(InvalidData):
        parse_synonyms(data[:-2])


@pytest.mark.e2e
def test_gzipped_index_is_used_when_plain_missing(greek: str):
    base = Path(greek).with_suffix("")
    idx = base.with_suffix(".idx")
    with gzip.open(str(idx) + ".gz", "wb") as f:
        f.write(idx.read_bytes())
    idx.unlink()

    info = parse_info(greek)
    assert [e.name for e in load_index(info)] == ["alpha", "Beta", "beta", "gamma"]
    assert load_synonyms(info) == []


@pytest.mark.e2e
def test_missing_index_or_data_file(greek: str):
    base = Path(greek).with_suffix("")
    base.with_suffix(".dict").unlink()
    with pytest.raises(FileNotFound, match="data file"):
        Dictionary.open(greek)

    base.with_suffix(".idx").unlink()
    with pytest.raises(FileNotFound, match="index file"):
        Dictionary.open(greek)


@pytest.mark.e2e
def test_truncated_index_fails_to_open(greek: str):
    idx = Path(greek).with_suffix(".idx")
    idx.write_bytes(idx.read_bytes()[:-3])
    with pytest.raises(InvalidData, match="truncated"):
        Dictionary.open(greek)
