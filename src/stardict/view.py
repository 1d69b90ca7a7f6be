"""
View-model for dictionary viewers.

Keeps a sliding window of materialized entries starting at `top_position`
(an offset in the dictionary's active order), scrolled by `top_offset`
units into the first one. Units are rows for a terminal; a GUI passes its
row height in pixels as `row_height` and its viewport height in pixels.

Invariants after every transition:
  * entries[i] is the entry at top_position + i,
  * the first entry's top edge sits at -top_offset,
  * the entries cover the viewport unless the dictionary ran out,
  * `selected` indexes a visible definition row.
"""
from __future__ import annotations

import enum
import html
import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import List, Optional

from . import config as CFG
from .dictionary import Dictionary
from .models import DecodedEntry, FieldType

log = logging.getLogger(__name__)

NO_USABLE_FIELD = "<no usable field found>"

_TAG_RE = re.compile(r"<[^>]*>")


def strip_markup(text: str) -> str:
    """Pango/XDXF markup to plain text, good enough for a terminal."""
    return html.unescape(_TAG_RE.sub("", text))


@dataclass
class ViewEntry:
    offset: int                      # position in the dictionary's active order
    word: str                        # display word, phonetics appended
    matched: int                     # bytes of the word matching the input
    definitions: List[str] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)   # definitions laid out for the width

    @property
    def rows(self) -> int:
        return max(1, len(self.lines))

    @property
    def matched_text(self) -> str:
        return self.word.encode("utf-8")[:self.matched].decode("utf-8", errors="ignore")


def definitions_of(entry: Optional[DecodedEntry]) -> tuple[List[str], List[str]]:
    """Return (phonetics, definitions) usable by a text renderer."""
    phonetics: List[str] = []
    out: List[str] = []
    for f in entry or ():
        if f.type == FieldType.MEANING:
            out.extend(line for line in f.text().split("\n") if line)
        elif f.type in (FieldType.PANGO, FieldType.XDXF):
            out.extend(line for line in strip_markup(f.text()).split("\n") if line.strip())
        elif f.type == FieldType.PHONETIC:
            phonetics.append(f.text())
    if not out:
        out.append(NO_USABLE_FIELD)
    return phonetics, out


def make_view_entry(dictionary: Dictionary, offset: int, matched_input: str,
                    wrap_width: Optional[int] = None) -> ViewEntry:
    name = dictionary.name_at(offset)
    phonetics, definitions = definitions_of(dictionary.entry_at(offset))
    word = name + "".join(f" /{p}/" for p in phonetics)
    if wrap_width:
        lines = [piece for d in definitions for piece in (textwrap.wrap(d, wrap_width) or [""])]
    else:
        lines = list(definitions)
    return ViewEntry(
        offset=offset,
        word=word,
        matched=dictionary.longest_common_prefix(name, matched_input),
        definitions=definitions,
        lines=lines,
    )


# ------------- input line -------------

class InputLine:
    """Editable search input with a cursor, counted in characters."""

    def __init__(self, text: str = "") -> None:
        self.chars: List[str] = list(text)
        self.cursor = len(self.chars)
        self.confirmed = False

    @property
    def text(self) -> str:
        return "".join(self.chars)

    def set(self, text: str) -> None:
        self.chars = list(text)
        self.cursor = len(self.chars)
        self.confirmed = False

    def insert(self, text: str) -> bool:
        if self.confirmed:
            self.chars, self.cursor = [], 0
            self.confirmed = False
        self.chars[self.cursor:self.cursor] = list(text)
        self.cursor += len(text)
        return bool(text)

    # Movement returns False: the text did not change.
    def home(self) -> bool:
        self.cursor = 0
        return False

    def end(self) -> bool:
        self.cursor = len(self.chars)
        return False

    def left(self) -> bool:
        self.cursor = max(0, self.cursor - 1)
        return False

    def right(self) -> bool:
        self.cursor = min(len(self.chars), self.cursor + 1)
        return False

    def confirm(self) -> bool:
        self.confirmed = True
        return False

    def delete_previous(self) -> bool:
        if self.cursor == 0:
            return False
        self.cursor -= 1
        del self.chars[self.cursor]
        return True

    def delete_next(self) -> bool:
        if self.cursor >= len(self.chars):
            return False
        del self.chars[self.cursor]
        return True

    def delete_to_home(self) -> bool:
        if self.cursor == 0:
            return False
        del self.chars[:self.cursor]
        self.cursor = 0
        return True

    def delete_to_end(self) -> bool:
        if self.cursor >= len(self.chars):
            return False
        del self.chars[self.cursor:]
        return True

    def delete_previous_word(self) -> bool:
        if self.cursor == 0:
            return False
        i = self.cursor
        while i > 0 and self.chars[i - 1] == " ":
            i -= 1
        while i > 0 and self.chars[i - 1] != " ":
            i -= 1
        del self.chars[i:self.cursor]
        self.cursor = i
        return True

    def transpose(self) -> bool:
        if self.cursor == 0 or len(self.chars) < 2:
            return False
        start = self.cursor - 1
        if self.cursor >= len(self.chars):
            start -= 1
        self.chars[start], self.chars[start + 1] = self.chars[start + 1], self.chars[start]
        if self.cursor < len(self.chars):
            self.cursor += 1
        return True


class Action(enum.Enum):
    DEFINITION_PREVIOUS = "definition-previous"
    DEFINITION_NEXT = "definition-next"
    ENTRY_PREVIOUS = "entry-previous"
    ENTRY_NEXT = "entry-next"
    PAGE_PREVIOUS = "page-previous"
    PAGE_NEXT = "page-next"

    INPUT_CONFIRM = "input-confirm"
    INPUT_HOME = "input-home"
    INPUT_END = "input-end"
    INPUT_LEFT = "input-left"
    INPUT_RIGHT = "input-right"
    INPUT_DELETE_PREVIOUS = "input-delete-previous"
    INPUT_DELETE_NEXT = "input-delete-next"
    INPUT_DELETE_TO_HOME = "input-delete-to-home"
    INPUT_DELETE_TO_END = "input-delete-to-end"
    INPUT_DELETE_PREVIOUS_WORD = "input-delete-previous-word"
    INPUT_TRANSPOSE = "input-transpose"


_INPUT_ACTIONS = {
    Action.INPUT_CONFIRM: InputLine.confirm,
    Action.INPUT_HOME: InputLine.home,
    Action.INPUT_END: InputLine.end,
    Action.INPUT_LEFT: InputLine.left,
    Action.INPUT_RIGHT: InputLine.right,
    Action.INPUT_DELETE_PREVIOUS: InputLine.delete_previous,
    Action.INPUT_DELETE_NEXT: InputLine.delete_next,
    Action.INPUT_DELETE_TO_HOME: InputLine.delete_to_home,
    Action.INPUT_DELETE_TO_END: InputLine.delete_to_end,
    Action.INPUT_DELETE_PREVIOUS_WORD: InputLine.delete_previous_word,
    Action.INPUT_TRANSPOSE: InputLine.transpose,
}


@dataclass(frozen=True)
class Row:
    """One visible line as handed to a renderer."""
    offset: int              # dictionary offset of the entry
    word: Optional[str]      # set on the entry's first line only
    matched: int
    text: str
    selected: bool


# ------------- view-model -------------

class ViewModel:
    def __init__(self, dictionary: Optional[Dictionary] = None, *,
                 height: int = CFG.VIEW_HEIGHT,
                 width: int = CFG.VIEW_WIDTH,
                 row_height: int = 1,
                 word_column: int = CFG.WORD_COLUMN,
                 wrap: bool = False,
                 center_on_search: bool = CFG.CENTER_ON_SEARCH) -> None:
        self.dictionary = dictionary
        self.height = height
        self.width = width
        self.row_height = row_height
        self.word_column = word_column
        self.wrap = wrap
        self.center_on_search = center_on_search

        self.input = InputLine()
        self.top_position = 0
        self.top_offset = 0
        self.selected = 0
        self.found = False
        self.entries: List[ViewEntry] = []
        if dictionary is not None:
            self.search()

    # ------------- layout -------------

    @property
    def visible_rows(self) -> int:
        return max(1, self.height // self.row_height)

    def _wrap_width(self) -> Optional[int]:
        if not self.wrap:
            return None
        return max(8, self.width - self.word_column - 1)

    def _entry_height(self, ve: ViewEntry) -> int:
        return ve.rows * self.row_height

    def _make(self, offset: int) -> ViewEntry:
        return make_view_entry(self.dictionary, offset, self.input.text, self._wrap_width())

    def _total_rows(self) -> int:
        return sum(ve.rows for ve in self.entries)

    def _top_row(self) -> int:
        return self.top_offset // self.row_height

    def _visible_count(self) -> int:
        return max(0, min(self.visible_rows, self._total_rows() - self._top_row()))

    def _clamp_selection(self) -> None:
        self.selected = max(0, min(self.selected, self._visible_count() - 1))

    # ------------- window maintenance -------------

    def _adjust_for_height(self) -> None:
        missing = self.height + self.top_offset
        kept: List[ViewEntry] = []
        for ve in self.entries:
            if missing <= 0:
                break
            missing -= self._entry_height(ve)
            kept.append(ve)
        self.entries = kept

        pos = self.top_position + len(self.entries)
        while missing > 0 and pos < len(self.dictionary):
            ve = self._make(pos)
            missing -= self._entry_height(ve)
            self.entries.append(ve)
            pos += 1

    def _adjust_for_offset(self) -> None:
        while self.top_offset < 0:
            if self.top_position <= 0:
                self.top_offset = 0
                break
            self.top_position -= 1
            ve = self._make(self.top_position)
            self.top_offset += self._entry_height(ve)
            self.entries.insert(0, ve)

        while self.top_offset > 0:
            if not self.entries:
                if self.top_position >= len(self.dictionary):
                    self.top_offset = 0
                    break
                self.entries.append(self._make(self.top_position))
            height = self._entry_height(self.entries[0])
            if self.top_offset < height:
                break
            self.top_offset -= height
            self.entries.pop(0)
            self.top_position += 1

        self._adjust_for_height()

    def reload(self) -> None:
        """Drop the materialized entries and fill the viewport from top_position."""
        self.entries = []
        if self.dictionary is None:
            return
        self._adjust_for_height()

    def rematerialize(self) -> None:
        """Rebuild the referenced entries for the current layout, then re-fill."""
        if self.dictionary is None:
            return
        self.entries = [self._make(self.top_position + i) for i in range(len(self.entries))]
        self._adjust_for_offset()

    # ------------- transitions -------------

    def set_dictionary(self, dictionary: Optional[Dictionary]) -> None:
        self.dictionary = dictionary
        self.search()

    def set_input(self, text: str) -> None:
        self.input.set(text)
        self.search()

    def type_text(self, text: str) -> None:
        if self.input.insert(text):
            self.search()

    def search(self) -> None:
        """The input changed (or the dictionary did): jump to the best match."""
        self.top_offset = 0
        self.selected = 0
        if self.dictionary is None:
            self.top_position, self.found, self.entries = 0, False, []
            return

        it, self.found = self.dictionary.search(self.input.text)
        self.top_position = it.tell()
        self.reload()
        if self.center_on_search and self.dictionary.collation is not None:
            self.scroll(-(self.height // 3))

    def scroll(self, delta: int) -> None:
        """Scroll by `delta` units, positive is down."""
        if self.dictionary is None:
            return
        self.top_offset += delta
        self._adjust_for_offset()
        self._clamp_selection()

    def scroll_steps(self, n: int) -> None:
        self.scroll(n * CFG.SCROLL_STEP * self.row_height)

    def resize(self, height: int, width: Optional[int] = None) -> None:
        self.height = height
        if width is not None:
            self.width = width
        if self.dictionary is None:
            return
        self.rematerialize()

        visible = self._visible_count()
        if visible and self.selected >= visible:
            self.scroll((self.selected - visible + 1) * self.row_height)
            self.selected = self._visible_count() - 1
        self._clamp_selection()

    # ------------- selection -------------

    def select_next_definition(self) -> None:
        if self.selected < self._visible_count() - 1:
            self.selected += 1
        else:
            self.scroll(self.row_height)

    def select_previous_definition(self) -> None:
        if self.selected > 0:
            self.selected -= 1
        else:
            self.scroll(-self.row_height)

    def select_previous_entry(self) -> bool:
        if self.dictionary is None:
            return False
        if self.selected == 0 and self._top_row() == 0:
            if self.top_position == 0:
                return False
            self.scroll(-self.row_height)

        # last entry starting above the selection
        first = -self._top_row()
        for ve in self.entries:
            following = first + ve.rows
            if following >= self.selected:
                break
            first = following

        if first < 0:
            self.selected = 0
            self.scroll(first * self.row_height)
        else:
            self.selected = first
        return True

    def select_next_entry(self) -> None:
        if self.dictionary is None:
            return
        # first entry starting below the selection
        first = -self._top_row()
        for ve in self.entries:
            first += ve.rows
            if first > self.selected:
                break

        last_row = self.visible_rows - 1
        if first > last_row:
            self.selected = last_row
            self.scroll((first - last_row) * self.row_height)
        else:
            self.selected = first
        self._clamp_selection()

    def page_next(self) -> None:
        self.scroll(self.visible_rows * self.row_height)

    def page_previous(self) -> None:
        self.scroll(-self.visible_rows * self.row_height)

    def process_action(self, action: Action) -> None:
        handler = _INPUT_ACTIONS.get(action)
        if handler is not None:
            if handler(self.input):
                self.search()
            return

        if action is Action.DEFINITION_PREVIOUS:
            self.select_previous_definition()
        elif action is Action.DEFINITION_NEXT:
            self.select_next_definition()
        elif action is Action.ENTRY_PREVIOUS:
            self.select_previous_entry()
        elif action is Action.ENTRY_NEXT:
            self.select_next_entry()
        elif action is Action.PAGE_PREVIOUS:
            self.page_previous()
        elif action is Action.PAGE_NEXT:
            self.page_next()

    # ------------- renderer contract -------------

    def rows(self) -> List[Row]:
        out: List[Row] = []
        skip = self._top_row()
        for ve in self.entries:
            lines = ve.lines or [""]
            for i, text in enumerate(lines):
                if skip:
                    skip -= 1
                    continue
                if len(out) >= self.visible_rows:
                    return out
                out.append(Row(
                    offset=ve.offset,
                    word=ve.word if i == 0 else None,
                    matched=ve.matched if i == 0 else 0,
                    text=text,
                    selected=len(out) == self.selected,
                ))
        return out

    def selected_entry(self) -> Optional[ViewEntry]:
        row = self._top_row() + self.selected
        for ve in self.entries:
            if row < ve.rows:
                return ve
            row -= ve.rows
        return None
