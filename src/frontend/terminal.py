from __future__ import annotations
import os
import shutil
import sys
from typing import Callable, List, Optional, TextIO

from stardict.view import Action, Row

from . import Session

CSI = "\033["

# header, status line and prompt
_CHROME_ROWS = 3

_COMMANDS = {
    ":n": Action.DEFINITION_NEXT,
    ":p": Action.DEFINITION_PREVIOUS,
    ":j": Action.ENTRY_NEXT,
    ":k": Action.ENTRY_PREVIOUS,
    ":f": Action.PAGE_NEXT,
    ":b": Action.PAGE_PREVIOUS,
}

HELP = (
    "Type a word and press Enter to look it up (empty line to quit).\n"
    "  :n / :p       next / previous definition\n"
    "  :j / :k       next / previous entry\n"
    "  :f / :b       page down / up\n"
    "  :d N          switch to dictionary N (1-based)\n"
    "  :] / :[       next / previous dictionary\n"
    "  :tab          back to the last dictionary\n"
    "  :clear, :help, :q"
)


def _supports_color(stream: TextIO = sys.stdout) -> bool:
    return stream.isatty() and os.environ.get("NO_COLOR", "") == ""


def _c(text: str, code: str, color: bool = True) -> str:
    if not color or not text:
        return text
    return f"{CSI}{code}m{text}{CSI}0m"


def _clear_screen(stream: TextIO = sys.stdout) -> None:
    if stream.isatty():
        print("\033[2J\033[H", end="", flush=True, file=stream)
    else:
        print(file=stream)


def _fit(text: str, width: int) -> str:
    if width <= 0:
        return ""
    return text if len(text) <= width else text[:max(0, width - 1)] + "…"


def format_row(row: Row, word_column: int, width: int, color: bool = False) -> str:
    """One viewport line: the word column (match underlined) then the definition."""
    word = _fit(row.word or "", word_column - 1)
    matched = word.encode("utf-8")[:row.matched].decode("utf-8", errors="ignore")
    head = _c(matched, "4", color) + word[len(matched):]
    head += " " * (word_column - len(word))
    text = _fit(row.text, width - word_column)
    if row.selected:
        return _c(f"{word.ljust(word_column)}{text}", "7", color) if color else f"{head}{text}"
    return head + text


class TerminalApp:
    """Line-oriented viewer: each line typed at the prompt is a new search."""

    def __init__(self, session: Session, *, out: TextIO = sys.stdout,
                 color: Optional[bool] = None) -> None:
        self.session = session
        self.out = out
        self.color = _supports_color(out) if color is None else color
        self.running = True
        self.message = ""

    # ------------- rendering -------------

    def _fit_terminal(self) -> None:
        size = shutil.get_terminal_size((80, 24))
        view = self.session.view
        height = max(1, size.lines - _CHROME_ROWS)
        if (height, size.columns) != (view.height, view.width):
            view.resize(height, size.columns)

    def header(self) -> str:
        names: List[str] = []
        for i, slot in enumerate(self.session.registry):
            label = f"{i + 1}:{slot.display_name}"
            current = i == self.session.registry.current_index
            names.append(_c(label, "1;36", self.color) if current else _c(label, "2;37", self.color))
        return "  ".join(names)

    def render(self) -> List[str]:
        view = self.session.view
        lines = [self.header()]
        lines.extend(format_row(r, view.word_column, view.width, self.color) for r in view.rows())
        if view.dictionary is None:
            status = "(no dictionary loaded)"
        elif not view.found and view.input.text:
            status = f"no exact match for {view.input.text!r}"
        else:
            status = f"{view.top_position + 1}/{len(view.dictionary)}"
        lines.append(_c(status, "2;37", self.color))
        return lines

    def draw(self) -> None:
        _clear_screen(self.out)
        print("\n".join(self.render()), file=self.out, flush=True)
        if self.message:
            print(self.message, file=self.out)
            self.message = ""

    # ------------- commands -------------

    def handle(self, raw: str) -> bool:
        """Apply one line of input; False once the user asked to quit."""
        cmd = raw.strip()
        if raw == "" or cmd in (":q", ":quit"):
            self.running = False
            return False

        view = self.session.view
        if cmd in _COMMANDS:
            view.process_action(_COMMANDS[cmd])
        elif cmd == ":]":
            self.session.cycle(1)
        elif cmd == ":[":
            self.session.cycle(-1)
        elif cmd == ":tab":
            self.session.switch_to_last()
        elif cmd.startswith(":d"):
            arg = cmd[2:].strip()
            if not arg.isdigit() or not self.session.select(int(arg) - 1):
                self.message = _c(f"(no dictionary {arg or '?'})", "2;31", self.color)
        elif cmd in (":clear", ":cls"):
            self.message = ""
        elif cmd == ":help":
            self.message = HELP
        else:
            view.set_input(cmd)
        return True

    def run(self, read: Callable[[str], str] = input) -> int:
        self.message = _c("Type :help for commands.", "2;37", self.color)
        while self.running:
            self._fit_terminal()
            self.draw()
            try:
                raw = read("> ")
            except (EOFError, KeyboardInterrupt):
                print(file=self.out)
                break
            self.handle(raw)
        return 0
