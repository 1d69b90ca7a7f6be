from pathlib import Path

import pytest

from builders import meaning
from stardict.generator import write_dictionary


@pytest.fixture
def build_dict(tmp_path: Path):
    """Factory: build_dict(name, {word: text | fields}, **info) -> .ifo path."""
    def _build(name: str, entries, *, synonyms=(), **info) -> str:
        pairs = list(entries.items() if isinstance(entries, dict) else entries)
        items = [(w, meaning(v) if isinstance(v, str) else v) for w, v in pairs]
        info.setdefault("book_name", name)
        if all(isinstance(v, str) for _, v in pairs):
            info.setdefault("same_type_sequence", "m")
        out = write_dictionary(str(tmp_path / name), items, synonyms=synonyms, **info)
        return out.path
    return _build


@pytest.fixture
def greek(build_dict) -> str:
    return build_dict("greek", {
        "alpha": "first letter",
        "Beta": "second letter, capital",
        "beta": "second letter",
        "gamma": "third letter",
    })


@pytest.fixture
def fruit(build_dict) -> str:
    words = ["apple", "apricot", "banana", "bean", "beer", "beet", "berry", "cherry",
             "date", "fig", "grape", "kiwi", "lemon", "lime", "mango", "melon",
             "olive", "orange", "peach", "pear", "plum", "quince", "red", "redcurrant",
             "reed", "rhubarb", "sloe", "tomato"]
    return build_dict("fruit", {w: f"the {w}\nalso {w}s" for w in words})
