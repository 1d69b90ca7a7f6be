"""
sdquery: look up words read from stdin, one per line.

For every word and every dictionary with an exact hit, prints
`book name<TAB>definition` per textual field, with backslashes and newlines
escaped; an empty line follows each word. Markup can be rendered as ANSI or
IRC formatting codes.
"""
from __future__ import annotations
import argparse
import logging
import sys
from html.parser import HTMLParser
from typing import Callable, List, Optional, TextIO

from stardict.collation import ascii_casecmp
from stardict.dictionary import Dictionary
from stardict.errors import StardictError
from stardict.models import EntryField, FieldType

log = logging.getLogger(__name__)


class Style:
    __slots__ = ("bold", "italic", "underline")

    def __init__(self, bold: bool = False, italic: bool = False, underline: bool = False) -> None:
        self.bold, self.italic, self.underline = bold, italic, underline

    def copy(self) -> "Style":
        return Style(self.bold, self.italic, self.underline)


Formatter = Callable[[Optional[Style]], str]


def format_plain(style: Optional[Style]) -> str:
    return ""


def format_ansi(style: Optional[Style]) -> str:
    codes = "\x1b[0"
    if style is not None:
        codes += ";1" if style.bold else ""
        codes += ";4" if style.underline else ""
        codes += ";3" if style.italic else ""
    return codes + "m"


def format_irc(style: Optional[Style]) -> str:
    codes = "\x0f"
    if style is not None:
        codes += "\x02" if style.bold else ""
        codes += "\x1f" if style.underline else ""
        codes += "\x1d" if style.italic else ""
    return codes


FORMATTERS = {"plain": format_plain, "ansi": format_ansi, "irc": format_irc}

# tag -> attribute switched on; XDXF keywords and examples map onto the same three
_TAG_STYLES = {
    "b": "bold", "strong": "bold", "k": "bold",
    "i": "italic", "em": "italic", "ex": "italic", "abr": "italic",
    "u": "underline",
}


class _MarkupRenderer(HTMLParser):
    def __init__(self, formatter: Formatter) -> None:
        super().__init__(convert_charrefs=True)
        self.formatter = formatter
        self.stack: List[Style] = [Style()]
        self.out: List[str] = []

    def handle_starttag(self, tag, attrs):
        style = self.stack[-1].copy()
        if tag in _TAG_STYLES:
            setattr(style, _TAG_STYLES[tag], True)
        elif tag == "span":
            a = dict(attrs)
            if a.get("weight") in ("bold", "heavy", "ultrabold") or a.get("font_weight") == "bold":
                style.bold = True
            if a.get("style") == "italic" or a.get("font_style") == "italic":
                style.italic = True
            if a.get("underline") == "single":
                style.underline = True
        self.stack.append(style)

    def handle_endtag(self, tag):
        if len(self.stack) > 1:
            self.stack.pop()

    def handle_data(self, data):
        self.out.append(self.formatter(self.stack[-1]))
        self.out.append(data)

    def render(self, markup: str) -> str:
        self.feed(markup)
        self.close()
        self.out.append(self.formatter(None))
        return "".join(self.out)


def field_to_text(f: EntryField, formatter: Formatter) -> Optional[str]:
    if f.type == FieldType.MEANING:
        return f.text()
    if f.type in (FieldType.PANGO, FieldType.XDXF):
        return _MarkupRenderer(formatter).render(f.text())
    return None


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def count_equal_chars(a: str, b: str) -> int:
    return sum(1 for x, y in zip(a, b) if x == y)


def lookup(dictionary: Dictionary, word: str, formatter: Formatter = format_plain) -> List[str]:
    """Output lines for `word`, empty without an exact hit."""
    it, found = dictionary.search(word)
    if not found:
        return []

    # Several entries may compare equal; prefer the closest spelling
    best, best_score = it.tell(), count_equal_chars(it.name() or "", word)
    while it.next().is_valid():
        name = it.name() or ""
        if ascii_casecmp(name, word) != 0:
            break
        score = count_equal_chars(name, word)
        if score > best_score:
            best, best_score = it.tell(), score

    entry = dictionary.entry_at(best)
    lines: List[str] = []
    for f in entry or ():
        text = field_to_text(f, formatter)
        if text is not None:
            lines.append(f"{dictionary.book_name}\t{_escape(text)}")
    return lines


def run(dictionaries: List[Dictionary], stdin: TextIO, stdout: TextIO,
        formatter: Formatter = format_plain) -> None:
    for raw in stdin:
        word = raw.rstrip("\n").replace("\r", "")
        if word:
            for d in dictionaries:
                for line in lookup(d, word, formatter):
                    print(line, file=stdout)
        print(file=stdout, flush=True)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="sdquery", description="Look up words from stdin in StarDict dictionaries")
    ap.add_argument("dictionaries", nargs="+", metavar="dictionary.ifo")
    ap.add_argument("--format", choices=sorted(FORMATTERS), default="plain",
                    help="How to render formatted definitions")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    opened: List[Dictionary] = []
    try:
        for path in args.dictionaries:
            try:
                opened.append(Dictionary.open(path))
            except StardictError as exc:
                print(f"error: opening dictionary {path!r} failed: {exc}", file=sys.stderr)
                return 1
        run(opened, sys.stdin, sys.stdout, FORMATTERS[args.format])
        return 0
    finally:
        for d in opened:
            d.close()


if __name__ == "__main__":
    raise SystemExit(main())
