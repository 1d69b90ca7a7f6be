"""
Ordering of dictionary words.

Without a collator the index keeps the order it is stored in: ASCII
case-insensitive, ties broken by bytes. With a locale declared in the .ifo
(`collation=`) and PyICU installed, entries get a second, locale-aware order.
"""
from __future__ import annotations
import logging
import string
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from . import config as CFG

# PyICU is optional; without it dictionaries keep their raw order.
try:
    import icu  # type: ignore
    _HAS_ICU = True
except ImportError:  # pragma: no cover
    icu = None
    _HAS_ICU = False

log = logging.getLogger(__name__)

_ASCII_FOLD = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def ascii_casecmp(a: str, b: str) -> int:
    """Compare folding ASCII letters only; code point order equals UTF-8 byte order."""
    return _sign(a.translate(_ASCII_FOLD), b.translate(_ASCII_FOLD))


def raw_compare(a: str, b: str) -> int:
    """The order .idx files are sorted in: ASCII case-insensitive, then bytes."""
    return ascii_casecmp(a, b) or _sign(a, b)


def raw_sort_key(s: str) -> tuple[str, str]:
    return s.translate(_ASCII_FOLD), s


def _utf8_len(s: str) -> int:
    return len(s.encode("utf-8"))


def exact_common_prefix(s1: str, s2: str) -> int:
    """Byte length of the longest exactly equal prefix."""
    n = 0
    for c1, c2 in zip(s1, s2):
        if c1 != c2:
            break
        n += 1
    return _utf8_len(s1[:n])


class Collation:
    """
    Locale-aware comparison backed by an ICU collator.

    Lifecycle: create() -> sort_permutation() for each key list -> finish(),
    after which the collator is lowered to secondary strength so that
    searches ignore case.
    """
    def __init__(self, locale: str, collator) -> None:
        self.locale = locale
        self._collator = collator
        self._breaker = icu.BreakIterator.createCharacterInstance(icu.Locale.getRoot())

    @classmethod
    def create(cls, locale: str) -> Optional["Collation"]:
        if not _HAS_ICU:
            log.warning("collation %r requested but PyICU is not installed", locale)
            return None
        try:
            collator = icu.Collator.createInstance(icu.Locale(locale))
            collator.setAttribute(icu.UCollAttribute.CASE_FIRST, icu.UCollAttributeValue.OFF)
        except icu.ICUError as exc:
            log.warning("failed to create a collator for %r: %s", locale, exc)
            return None
        return cls(locale, collator)

    def sort_keys(self, keys: Sequence[str]) -> List[bytes]:
        """ICU sort keys of `keys`, computed in slices of WORDS_PER_WORKER words per thread."""
        workers = CFG.worker_count(len(keys), CFG.WORDS_PER_WORKER)
        if workers == 1:
            return [self._collator.getSortKey(k) for k in keys]

        step = -(-len(keys) // workers)
        slices = [keys[i:i + step] for i in range(0, len(keys), step)]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(lambda part: [self._collator.getSortKey(k) for k in part], slices))
        return [key for part in parts for key in part]

    def sort_permutation(self, keys: Sequence[str]) -> List[int]:
        """Indices of `keys` in collation order, ties broken by bytes."""
        sort_keys = self.sort_keys(keys)
        return sorted(range(len(keys)), key=lambda i: (sort_keys[i], keys[i]))

    def finish(self) -> None:
        self._collator.setStrength(icu.Collator.SECONDARY)

    def compare(self, a: str, b: str) -> int:
        return self._collator.compare(a, b)

    # ------------- grapheme-wise prefix -------------

    def _boundaries(self, s: str) -> List[int]:
        """Extended grapheme cluster ends, as indices into `s`."""
        utf16_to_index: Dict[int, int] = {}
        u = 0
        for i, ch in enumerate(s):
            utf16_to_index[u] = i
            u += 2 if ord(ch) > 0xFFFF else 1
        utf16_to_index[u] = len(s)

        self._breaker.setText(s)
        return [utf16_to_index[pos] for pos in self._breaker]

    def longest_common_prefix(self, s1: str, s2: str) -> int:
        """Byte length of the prefix of `s1` that collates equal to a prefix of `s2`."""
        longest = 0
        for end1, end2 in zip(self._boundaries(s1), self._boundaries(s2)):
            if self._collator.compare(s1[:end1], s2[:end2]) == 0:
                longest = end1
        return _utf8_len(s1[:longest])


def longest_common_prefix(s1: str, s2: str, collation: Collation | None = None) -> int:
    if collation is None:
        return exact_common_prefix(s1, s2)
    return collation.longest_common_prefix(s1, s2)
