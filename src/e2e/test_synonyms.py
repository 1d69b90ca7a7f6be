import pytest

from stardict.dictionary import Dictionary
from stardict.errors import InvalidData

COLORS = {"black": "no light", "blue": "sky", "color": "hue", "green": "grass"}


@pytest.mark.e2e
def test_synonym_resolves_to_main_entry(build_dict):
    ifo = build_dict("colors", COLORS, synonyms=[("colour", 2), ("Colour", 2), ("vert", 3)])
    with Dictionary.open(ifo) as d:
        assert d.info.synonym_word_count == 3
        assert d.synonyms("colour") == ["color", "color"]
        assert d.synonyms("VERT") == ["green"]
        assert d.synonyms("grey") == []


@pytest.mark.e2e
def test_out_of_range_target_is_dropped(build_dict):
    ifo = build_dict("colors", COLORS, synonyms=[("colour", 99), ("vert", 3)])
    with Dictionary.open(ifo) as d:
        assert d.synonyms("colour") == []
        assert d.synonyms("vert") == ["green"]


@pytest.mark.e2e
def test_out_of_range_target_raises_when_strict(build_dict):
    ifo = build_dict("colors", COLORS, synonyms=[("colour", 99)])
    with Dictionary.open(ifo, drop_invalid_synonyms=False) as d:
        with pytest.raises(InvalidData, match="colour"):
            d.synonyms("colour")
