from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import List, Optional


class Version(enum.Enum):
    V2_4_2 = "2.4.2"
    V3_0_0 = "3.0.0"


class FieldType:
    """Single-byte entry field type identifiers."""
    MEANING = "m"         # plain text meaning
    LOCALE = "l"          # meaning in the locale's charset
    PANGO = "g"           # Pango text markup
    PHONETIC = "t"        # English phonetic string
    XDXF = "x"            # XDXF markup
    YB_KANA = "y"         # Chinese YinBiao or Japanese KANA
    POWERWORD = "k"       # KingSoft PowerWord data
    MEDIAWIKI = "w"       # MediaWiki markup
    HTML = "h"            # HTML
    RESOURCE = "r"        # resource file list
    SOUND = "W"           # WAV file
    PICTURE = "P"         # picture file
    EXPERIMENTAL = "X"    # reserved, experimental


@dataclass(frozen=True)
class DictionaryInfo:
    path: str
    version: Version
    book_name: str
    word_count: int
    index_filesize: int
    synonym_word_count: int = 0
    index_offset_bits: int = 32
    author: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    same_type_sequence: Optional[str] = None
    collation_locale: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IndexEntry:
    name: str
    data_offset: int
    data_size: int


@dataclass(frozen=True, slots=True)
class SynonymEntry:
    word: str
    target: int


@dataclass(frozen=True, slots=True)
class EntryField:
    type: str                 # one of FieldType, or an unknown byte kept as-is
    data: bytes

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class DecodedEntry:
    fields: List[EntryField] = field(default_factory=list)

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)
