from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from . import config as CFG
from .collation import Collation, ascii_casecmp, longest_common_prefix
from .decoder import decode_entry
from .errors import InvalidData, StardictError
from .info import parse_info
from .loader import load_index, load_synonyms
from .models import DecodedEntry, DictionaryInfo, IndexEntry, SynonymEntry
from .storage import DictStore

log = logging.getLogger(__name__)


class Dictionary:
    """
    An opened StarDict dictionary.

    Glues together:
      - the parsed .ifo (DictionaryInfo),
      - the in-memory index and synonym arrays,
      - the optional collated order (Collation + permutations),
      - the .dict byte source (DictStore).

    Offsets handed out by search() and DictIterator are positions in the
    active order: the collated one when a collator exists, the raw one
    otherwise.
    """

    # ------------- lifecycle -------------

    def __init__(self, info: DictionaryInfo, index: List[IndexEntry],
                 synonyms: List[SynonymEntry], store: DictStore, *,
                 collation: Optional[Collation] = None,
                 drop_invalid_synonyms: bool = CFG.DROP_INVALID_SYNONYMS) -> None:
        self.info = info
        self.index = index
        self.synonym_entries = synonyms
        self.store = store
        self.collation = collation
        self.drop_invalid_synonyms = drop_invalid_synonyms
        self._collated_index: Optional[List[int]] = None
        self._collated_synonyms: Optional[List[int]] = None
        if collation is not None:
            self._collated_index = collation.sort_permutation([e.name for e in index])
            self._collated_synonyms = collation.sort_permutation([s.word for s in synonyms])
            collation.finish()

    # /* ~~~ Parse the .ifo, load the index and synonyms, open .dict ~~~ */
    @classmethod
    def open(cls, path: str, *, drop_invalid_synonyms: bool = CFG.DROP_INVALID_SYNONYMS) -> "Dictionary":
        info = parse_info(path)
        index = load_index(info)
        store = DictStore.open(info)
        try:
            synonyms = load_synonyms(info)
        except StardictError:
            store.close()
            raise

        collation = Collation.create(info.collation_locale) if info.collation_locale else None
        log.info("Opened %s: %d words, %d synonyms%s", info.book_name, len(index), len(synonyms),
                 f", collation {info.collation_locale}" if collation else "")
        return cls(info, index, synonyms, store, collation=collation,
                   drop_invalid_synonyms=drop_invalid_synonyms)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Dictionary":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------- ordering -------------

    def __len__(self) -> int:
        return len(self.index)

    @property
    def word_count(self) -> int:
        return len(self.index)

    @property
    def book_name(self) -> str:
        return self.info.book_name

    def raw_offset(self, offset: int) -> int:
        """Map a position in the active order to a position in the .idx file."""
        if self._collated_index is None:
            return offset
        return self._collated_index[offset]

    def entry_info(self, offset: int) -> IndexEntry:
        return self.index[self.raw_offset(offset)]

    def name_at(self, offset: int) -> str:
        return self.entry_info(offset).name

    def compare(self, a: str, b: str) -> int:
        """Search comparator: the collator if any, else ASCII case-insensitive."""
        if self.collation is not None:
            return self.collation.compare(a, b)
        return ascii_casecmp(a, b)

    def longest_common_prefix(self, s1: str, s2: str) -> int:
        return longest_common_prefix(s1, s2, self.collation)

    def __iter__(self) -> Iterator[str]:
        for offset in range(len(self.index)):
            yield self.name_at(offset)

    def iterator(self, offset: int = 0) -> "DictIterator":
        return DictIterator(self, offset)

    # ------------- query -------------

    # /* ~~~ Binary search with a fallback to the best near-miss ~~~ */
    def search(self, word: str) -> Tuple["DictIterator", bool]:
        imin, imax = 0, len(self.index) - 1
        while imin <= imax:
            imid = imin + (imax - imin) // 2
            cmp = self.compare(word, self.name_at(imid))
            if cmp > 0:
                imin = imid + 1
            elif cmp < 0:
                imax = imid - 1
            else:
                while imid > 0 and self.compare(word, self.name_at(imid - 1)) == 0:
                    imid -= 1
                return DictIterator(self, imid), True

        # Prefer a preceding entry sharing a strictly longer prefix with the input
        best = self.longest_common_prefix(word, self.name_at(imin)) if imin < len(self.index) else 0
        while imin > 0:
            probe = self.longest_common_prefix(word, self.name_at(imin - 1))
            if probe <= best:
                break
            best = probe
            imin -= 1
        return DictIterator(self, imin), False

    def _synonym_at(self, i: int) -> SynonymEntry:
        if self._collated_synonyms is None:
            return self.synonym_entries[i]
        return self.synonym_entries[self._collated_synonyms[i]]

    def synonyms(self, word: str) -> List[str]:
        """Names of the main entries `word` is a synonym of."""
        imin, imax = 0, len(self.synonym_entries) - 1
        first = None
        while imin <= imax:
            imid = imin + (imax - imin) // 2
            cmp = self.compare(word, self._synonym_at(imid).word)
            if cmp > 0:
                imin = imid + 1
            elif cmp < 0:
                imax = imid - 1
            else:
                first = imid
                break
        if first is None:
            return []
        while first > 0 and self.compare(word, self._synonym_at(first - 1).word) == 0:
            first -= 1

        out: List[str] = []
        i = first
        while i < len(self.synonym_entries):
            syn = self._synonym_at(i)
            if self.compare(word, syn.word) != 0:
                break
            if syn.target < len(self.index):
                out.append(self.index[syn.target].name)
            elif self.drop_invalid_synonyms:
                log.debug("%s: synonym %r points past the index (%d)", self.info.path, syn.word, syn.target)
            else:
                raise InvalidData(f"synonym {syn.word!r} points past the index ({syn.target})",
                                  path=self.info.path)
            i += 1
        return out

    # /* ~~~ Read and decode one entry; failures are logged, not raised ~~~ */
    def entry_at(self, offset: int) -> Optional[DecodedEntry]:
        if not 0 <= offset < len(self.index):
            return None
        ie = self.entry_info(offset)
        data = self.store.read_at(ie.data_offset, ie.data_size)
        if len(data) != ie.data_size:
            log.debug("%s: entry %r is truncated", self.info.path, ie.name)
            return None
        try:
            return decode_entry(data, self.info.same_type_sequence)
        except InvalidData as exc:
            log.debug("%s: entry %r: %s", self.info.path, ie.name, exc)
            return None


class DictIterator:
    """A position in a dictionary's active order; `len(dictionary)` is the end."""

    __slots__ = ("owner", "offset")

    def __init__(self, owner: Dictionary, offset: int = 0) -> None:
        self.owner = owner
        self.offset = offset

    def __repr__(self) -> str:
        return f"DictIterator({self.owner.book_name!r}, {self.offset})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DictIterator):
            return NotImplemented
        return self.owner is other.owner and self.offset == other.offset

    def __hash__(self) -> int:
        return hash((id(self.owner), self.offset))

    def is_valid(self) -> bool:
        return 0 <= self.offset < len(self.owner)

    def tell(self) -> int:
        return self.offset

    def name(self) -> Optional[str]:
        return self.owner.name_at(self.offset) if self.is_valid() else None

    def entry(self) -> Optional[DecodedEntry]:
        return self.owner.entry_at(self.offset)

    def jump(self, n: int) -> "DictIterator":
        self.offset += n
        return self

    def next(self) -> "DictIterator":
        return self.jump(1)

    def prev(self) -> "DictIterator":
        return self.jump(-1)

    def copy(self) -> "DictIterator":
        return DictIterator(self.owner, self.offset)
