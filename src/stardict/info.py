from __future__ import annotations
import logging
import os
from typing import Dict, List

from . import config as CFG
from .errors import FileNotFound, InvalidData, IoError
from .models import DictionaryInfo, Version

log = logging.getLogger(__name__)

IFO_HEADER = b"StarDict's dict ifo file\n"

# .ifo key -> (DictionaryInfo attribute, is_numeric); order is the order we write them in
IFO_KEYS: Dict[str, tuple[str, bool]] = {
    "bookname":         ("book_name", False),
    "wordcount":        ("word_count", True),
    "synwordcount":     ("synonym_word_count", True),
    "idxfilesize":      ("index_filesize", True),
    "idxoffsetbits":    ("index_offset_bits", True),
    "author":           ("author", False),
    "email":            ("email", False),
    "website":          ("website", False),
    "description":      ("description", False),
    "date":             ("date", False),
    "sametypesequence": ("same_type_sequence", False),
    "collation":        ("collation_locale", False),
}


def _iter_pairs(body: bytes, path: str):
    for raw in body.split(b"\n"):
        line = raw.rstrip(b"\r")
        if not line:
            continue
        key, sep, value = line.partition(b"=")
        if not sep or not key:
            raise InvalidData("option format error", path=path)
        try:
            yield key.decode("utf-8"), value.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidData("invalid encoding, must be valid UTF-8", path=path) from None


def parse_info(path: str) -> DictionaryInfo:
    """Read and validate an .ifo file."""
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError:
        raise FileNotFound("no such file", path=path) from None
    except OSError as exc:
        raise IoError(str(exc), path=path) from exc

    if not data.startswith(IFO_HEADER):
        raise InvalidData("invalid header format", path=path)

    pairs = _iter_pairs(data[len(IFO_HEADER):], path)
    first = next(pairs, None)
    if first is None or first[0] != "version":
        raise InvalidData("version not specified", path=path)
    try:
        version = Version(first[1])
    except ValueError:
        raise InvalidData(f"invalid version: {first[1]}", path=path) from None

    values: Dict[str, object] = {}
    for key, value in pairs:
        known = IFO_KEYS.get(key)
        if known is None:
            log.info("%s: unknown key, ignoring: %s", path, key)
            continue
        attr, numeric = known
        if numeric:
            if not value or not all("0" <= c <= "9" for c in value):
                raise InvalidData(f"invalid integer: {key}={value}", path=path)
            values[attr] = int(value)
        else:
            values[attr] = value

    problems: List[str] = []
    if not values.get("book_name"):
        problems.append("no book name specified")
    if not values.get("word_count"):
        problems.append("word count not specified")
    if not values.get("index_filesize"):
        problems.append("index file size not specified")
    bits = values.get("index_offset_bits", CFG.DEFAULT_OFFSET_BITS)
    if bits not in (32, 64):
        problems.append(f"invalid index offset bits: {bits}")
    if problems:
        raise InvalidData("; ".join(problems), path=path)

    values["index_offset_bits"] = bits
    return DictionaryInfo(path=os.path.abspath(path), version=version, **values)


def format_info(info: DictionaryInfo) -> bytes:
    """Serialize info in the fixed key order, omitting empty and zero values."""
    lines = [f"version={info.version.value}"]
    for key, (attr, _) in IFO_KEYS.items():
        value = getattr(info, attr)
        if value in (None, "", 0):
            continue
        lines.append(f"{key}={value}")
    return IFO_HEADER + "".join(line + "\n" for line in lines).encode("utf-8")


def sibling(info_or_path: DictionaryInfo | str, extension: str) -> str:
    """Path of a sibling file: foo.ifo -> foo<extension>."""
    path = info_or_path.path if isinstance(info_or_path, DictionaryInfo) else info_or_path
    return os.path.splitext(path)[0] + extension


def list_dictionaries(directory: str) -> List[DictionaryInfo]:
    """Parse every *.ifo in `directory`, skipping the ones that fail."""
    out: List[DictionaryInfo] = []
    for name in sorted(os.listdir(directory)):
        if not name.lower().endswith(".ifo"):
            continue
        path = os.path.join(directory, name)
        try:
            out.append(parse_info(path))
        except (InvalidData, FileNotFound, IoError) as exc:
            log.info("skipping %s", exc)
    return out
