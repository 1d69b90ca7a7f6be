import pytest

from stardict.dictionary import Dictionary
from stardict.models import EntryField
from stardict.view import NO_USABLE_FIELD, Action, InputLine, ViewModel, make_view_entry


def _fills_viewport(view: ViewModel) -> bool:
    covered = sum(ve.rows for ve in view.entries) * view.row_height - view.top_offset
    at_end = view.top_position + len(view.entries) >= len(view.dictionary)
    return covered >= view.height or at_end or view.top_position == 0 and not view.entries


@pytest.fixture
def fruit_dict(fruit: str):
    d = Dictionary.open(fruit)
    yield d
    d.close()


@pytest.mark.e2e
def test_typing_and_erasing_reissues_search(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    assert view.top_position == 0

    for key in "red":
        view.type_text(key)
        it, found = fruit_dict.search(view.input.text)
        assert view.top_position == it.tell() and view.found == found
        assert _fills_viewport(view)

    assert view.found and view.entries[0].word == "red"

    for _ in range(2):
        view.process_action(Action.INPUT_DELETE_PREVIOUS)
        assert view.top_position == fruit_dict.search(view.input.text)[0].tell()
    assert view.input.text == "r"
    assert view.entries[0].word == "red"


@pytest.mark.e2e
def test_scroll_down_then_up_returns_to_start(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    view.set_input("banana")
    start = view.top_position

    for _ in range(5):
        view.scroll_steps(1)
        assert _fills_viewport(view)
    assert view.top_position > start

    for _ in range(5):
        view.scroll_steps(-1)
        assert _fills_viewport(view)
    assert abs(view.top_position - start) <= 1 and view.top_offset == 0


@pytest.mark.e2e
def test_scrolling_stops_at_the_top(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    view.scroll(-10)
    assert (view.top_position, view.top_offset) == (0, 0)
    assert [ve.word for ve in view.entries] == ["apple", "apricot", "banana"]


@pytest.mark.e2e
def test_viewport_fill_near_the_end(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    view.set_input("tomato")
    assert view.found and len(view.entries) == 1
    assert _fills_viewport(view)
    view.page_previous()
    assert _fills_viewport(view)
    assert view.top_position == 24


@pytest.mark.e2e
def test_entry_navigation(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    view.select_next_entry()
    assert view.selected == 2 and view.selected_entry().word == "apricot"
    view.process_action(Action.ENTRY_NEXT)
    assert view.selected_entry().word == "banana"

    view.process_action(Action.ENTRY_NEXT)
    assert view.selected == 5 and view.top_offset == 1
    assert view.selected_entry().word == "bean"

    view.process_action(Action.ENTRY_PREVIOUS)
    assert view.selected_entry().word == "banana"

    rows = view.rows()
    assert len(rows) == 6
    assert rows[0].word is None and rows[0].text == "also apples"
    assert [r.selected for r in rows].count(True) == 1


@pytest.mark.e2e
def test_definition_navigation_scrolls_at_edges(fruit_dict):
    view = ViewModel(fruit_dict, height=4)
    for _ in range(3):
        view.process_action(Action.DEFINITION_NEXT)
    assert view.selected == 3 and view.top_offset == 0
    view.process_action(Action.DEFINITION_NEXT)
    assert view.selected == 3 and view.top_offset == 1

    view.selected = 0
    view.process_action(Action.DEFINITION_PREVIOUS)
    assert (view.top_position, view.top_offset, view.selected) == (0, 0, 0)
    assert view.select_previous_entry() is False


@pytest.mark.e2e
def test_paging(fruit_dict):
    view = ViewModel(fruit_dict, height=6)
    view.process_action(Action.PAGE_NEXT)
    assert view.top_position == 3 and view.entries[0].word == "bean"
    view.process_action(Action.PAGE_PREVIOUS)
    assert view.top_position == 0


@pytest.mark.e2e
def test_resize_keeps_selection_visible(fruit_dict):
    view = ViewModel(fruit_dict, height=8)
    view.selected = 7
    view.resize(3)
    assert view.selected < 3
    assert len(view.rows()) == 3
    assert _fills_viewport(view)

    view.resize(12)
    assert len(view.rows()) == 12 and _fills_viewport(view)


@pytest.mark.e2e
def test_wrapping_depends_on_width(build_dict):
    ifo = build_dict("long", {"long": "a rather long definition that needs some wrapping"})
    with Dictionary.open(ifo) as d:
        view = ViewModel(d, height=6, width=40, word_column=24, wrap=True)
        narrow = view.entries[0].rows
        assert narrow > 1
        view.resize(6, 120)
        assert view.entries[0].rows == 1 < narrow


@pytest.mark.e2e
def test_view_entries_from_mixed_fields(build_dict):
    ifo = build_dict("mixed", [
        ("word", [EntryField("t", "wɜːd".encode()), EntryField("g", b"<b>bold</b> &amp; text")]),
        ("sound", [EntryField("W", b"RIFF")]),
        ("lines", [EntryField("m", b"one\n\ntwo")]),
    ])
    with Dictionary.open(ifo) as d:
        by_name = {d.name_at(i): i for i in range(len(d))}
        ve = make_view_entry(d, by_name["word"], "wo")
        assert ve.word == "word /wɜːd/" and ve.definitions == ["bold & text"]
        assert ve.matched == 2 and ve.matched_text == "wo"
        assert make_view_entry(d, by_name["sound"], "").definitions == [NO_USABLE_FIELD]
        assert make_view_entry(d, by_name["lines"], "x").lines == ["one", "two"]


@pytest.mark.e2e
def test_without_dictionary(fruit_dict):
    view = ViewModel(fruit_dict, height=4)
    view.set_dictionary(None)
    assert view.entries == [] and view.rows() == []
    view.scroll(3)
    view.select_next_entry()
    assert view.top_position == 0


def test_input_line_editing():
    line = InputLine()
    line.insert("hello world")
    assert line.delete_previous_word() and line.text == "hello "
    assert line.home() is False and line.cursor == 0
    assert line.delete_next() and line.text == "ello "
    assert line.delete_to_home() is False
    line.end()
    line.left()
    assert line.delete_to_end() and line.text == "ello"
    line.set("ab")
    assert line.transpose() and line.text == "ba"
    line.set("abc")
    line.home()
    line.right()
    assert line.transpose() and line.text == "bac" and line.cursor == 2
    assert line.delete_previous() and line.text == "bc"
    line.confirm()
    line.insert("x")
    assert line.text == "x"


def test_input_actions_only_search_on_change(fruit_dict):
    view = ViewModel(fruit_dict, height=4)
    view.set_input("be")
    view.selected = 2
    view.process_action(Action.INPUT_LEFT)
    assert view.selected == 2 and view.input.cursor == 1
    view.process_action(Action.INPUT_DELETE_TO_END)
    assert view.input.text == "b" and view.selected == 0
    assert view.top_position == fruit_dict.search("b")[0].tell()
