from pathlib import Path
import logging

import pytest

from builders import meaning
from stardict import collation as C
from stardict.collation import ascii_casecmp, raw_compare
from stardict.dictionary import Dictionary


@pytest.mark.e2e
def test_case_variants_and_near_miss(greek: str):
    with Dictionary.open(greek) as d:
        assert d.info.word_count == 4 and len(d) == 4
        assert d.book_name == "greek"

        it, found = d.search("beta")
        assert found and it.tell() == 1
        assert [d.name_at(1), d.name_at(2)] == ["Beta", "beta"]

        it, found = d.search("b")
        assert (it.tell(), found) == (1, False)


@pytest.mark.e2e
def test_every_word_is_found_at_its_first_occurrence(fruit: str):
    with Dictionary.open(fruit) as d:
        for offset, name in enumerate(d):
            it, found = d.search(name)
            assert found
            assert d.compare(it.name(), name) == 0
            assert it.tell() <= offset
            assert it.tell() == 0 or d.compare(d.name_at(it.tell() - 1), name) != 0
            assert d.search(name.upper())[0].tell() == it.tell()


@pytest.mark.e2e
@pytest.mark.parametrize("word", ["aardvark", "bee", "cat", "nut", "pa", "zebra", ""])
def test_absent_word_insertion_point(fruit: str, word: str):
    with Dictionary.open(fruit) as d:
        it, found = d.search(word)
        assert not found
        o = it.tell()
        if o > 0:
            assert d.compare(d.name_at(o - 1), word) <= 0
        if o < len(d):
            assert d.compare(word, d.name_at(o)) <= 0


@pytest.mark.e2e
def test_near_miss_prefers_longer_common_prefix(fruit: str):
    with Dictionary.open(fruit) as d:
        it, found = d.search("figs")
        assert not found and it.name() == "fig"

        it, found = d.search("reds")
        assert not found and it.name() == "redcurrant"


@pytest.mark.e2e
def test_iteration_covers_the_raw_index_once(fruit: str):
    with Dictionary.open(fruit) as d:
        assert sorted(d.raw_offset(i) for i in range(len(d))) == list(range(len(d)))
        names = list(d)
        assert all(raw_compare(a, b) < 0 for a, b in zip(names, names[1:]))


@pytest.mark.e2e
def test_iterator_operations(greek: str):
    with Dictionary.open(greek) as d:
        it = d.iterator()
        seen = []
        while it.is_valid():
            seen.append(it.name())
            it.next()
        assert seen == ["alpha", "Beta", "beta", "gamma"]
        assert it.tell() == len(d) and it.name() is None and it.entry() is None

        it.prev().jump(-2)
        assert it.name() == "Beta"
        assert it == d.iterator(1) and it != d.iterator(2)
        twin = it.copy()
        twin.next()
        assert it.tell() == 1 and twin.tell() == 2
        assert it.entry().fields == meaning("second letter, capital")


@pytest.mark.e2e
def test_unreadable_entries_become_none(build_dict):
    ifo = build_dict("broken", {"a": "first", "b": "second meaning"}, same_type_sequence=None)
    data = Path(ifo).with_suffix(".dict")
    data.write_bytes(data.read_bytes()[:-4])
    with Dictionary.open(ifo) as d:
        assert d.entry_at(0).fields == meaning("first")
        assert d.entry_at(1) is None
        assert d.entry_at(-1) is None and d.entry_at(2) is None


def test_ascii_only_case_folding():
    assert ascii_casecmp("ABC", "abc") == 0
    assert ascii_casecmp("Ä", "ä") != 0
    assert raw_compare("Beta", "beta") < 0


@pytest.mark.e2e
def test_collation_without_icu_keeps_raw_order(build_dict, monkeypatch, caplog):
    monkeypatch.setattr(C, "_HAS_ICU", False)
    ifo = build_dict("czech", {"chata": "cottage", "hrad": "castle"}, collation_locale="cs")
    with caplog.at_level(logging.WARNING, logger="stardict.collation"):
        d = Dictionary.open(ifo)
    try:
        assert d.collation is None
        assert list(d) == ["chata", "hrad"]
    finally:
        d.close()
    assert "PyICU" in caplog.text
