import pytest

from stardict import collation as C
from stardict.dictionary import Dictionary
from stardict.view import ViewModel

icu = pytest.importorskip("icu")

WORDS = {
    "alpha": "a", "Beta": "B", "beta": "b", "gamma": "g",
    "cesta": "road", "chata": "cottage", "hrad": "castle",
}


@pytest.mark.e2e
def test_czech_order_and_search(build_dict):
    ifo = build_dict("czech", WORDS, collation_locale="cs")
    with Dictionary.open(ifo) as d:
        assert d.collation is not None
        names = list(d)
        assert names.index("hrad") < names.index("chata")
        assert all(d.compare(a, b) <= 0 for a, b in zip(names, names[1:]))
        assert sorted(d.raw_offset(i) for i in range(len(d))) == list(range(len(d)))

        it, found = d.search("b")
        assert not found
        assert d.compare(d.name_at(it.tell() - 1), "b") < 0
        assert d.compare("b", it.name()) <= 0

        it, found = d.search("BETA")
        assert found and d.compare(it.name(), "beta") == 0


@pytest.mark.e2e
def test_grapheme_prefix_length():
    coll = C.Collation.create("cs")
    coll.finish()
    assert coll.longest_common_prefix("Chata", "chalupa") == len("Cha")
    assert coll.longest_common_prefix("é", "e") == 0
    assert C.longest_common_prefix("abc", "abd") == 2


@pytest.mark.e2e
def test_search_centers_the_match_with_a_collator(build_dict):
    ifo = build_dict("czech", WORDS, collation_locale="cs")
    with Dictionary.open(ifo) as d:
        it, found = d.search("gamma")
        assert found and it.tell() >= 2

        view = ViewModel(d, height=6, center_on_search=True)
        view.set_input("gamma")
        assert view.top_position == it.tell() - 2 and view.top_offset == 0
        assert view.entries[2].word == "gamma"

        plain = ViewModel(d, height=6)
        plain.set_input("gamma")
        assert plain.top_position == it.tell()


def test_sort_keys_split_across_workers(monkeypatch):
    words = ["hrad", "chata", "cesta", "Beta", "alpha", "beta", "gamma"]
    coll = C.Collation.create("cs")
    single = coll.sort_keys(words)

    monkeypatch.setattr(C.CFG, "WORDS_PER_WORKER", 2)
    monkeypatch.setattr(C.CFG.os, "cpu_count", lambda: 4)
    assert C.CFG.worker_count(len(words), C.CFG.WORDS_PER_WORKER) == 3
    assert coll.sort_keys(words) == single
    order = [words[i] for i in coll.sort_permutation(words)]
    assert order[0] == "alpha" and set(order[1:3]) == {"Beta", "beta"}
    assert order.index("hrad") < order.index("chata")
