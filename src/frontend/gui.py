# gui.py
# CustomTkinter viewer for StarDict dictionaries (dark theme).
# - Dictionaries open on a background thread (keeps the UI responsive).
# - Live search with debounce; the result pane is driven by the view-model.
# - Keyboard: Up/Down definitions, Alt+Up/Down entries, PgUp/PgDn pages,
#   Ctrl+Tab last dictionary, Ctrl+PgUp/PgDn cycle dictionaries.

from __future__ import annotations
import threading
from typing import Optional

import tkinter.messagebox as mb
import customtkinter as ctk

from stardict.view import Action, Row

from . import Session


def shorten_path(p: str, max_chars: int = 60) -> str:
    """Shorten long paths neatly for labels."""
    if len(p) <= max_chars:
        return p
    keep = max_chars // 2 - 3
    return p[:keep] + "..." + p[-keep:]


class DictionaryApp(ctk.CTk):
    """Dark-themed window showing one dictionary at a time."""

    def __init__(self, session: Session) -> None:
        super().__init__()

        ctk.set_appearance_mode("dark")
        ctk.set_default_color_theme("blue")

        self.title("sdview")
        self.geometry("900x650")
        self.minsize(640, 480)

        # State
        self.session = session
        self._loaded: bool = False
        self.load_failed: bool = False
        self._loading_thread: Optional[threading.Thread] = None
        self._search_after_id: Optional[str] = None

        # Fonts
        self.font_title = ctk.CTkFont(size=18, weight="bold")
        self.font_label = ctk.CTkFont(size=13)
        self.font_mono = ctk.CTkFont(family="Cascadia Mono, Menlo, Consolas, Courier New", size=13)

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)  # results
        self.grid_rowconfigure(3, weight=0)  # log

        self._build_header()
        self._build_search()
        self._build_results()
        self._build_log()
        self._bind_keys()

        self._set_status("Ready")
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # --------- UI sections ---------

    def _build_header(self) -> None:
        header = ctk.CTkFrame(self, corner_radius=10)
        header.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))
        header.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(header, text="Dictionaries", font=self.font_title).grid(
            row=0, column=0, sticky="w", padx=12, pady=10
        )

        names = [s.display_name for s in self.session.registry] or ["—"]
        self.menu_dict = ctk.CTkOptionMenu(header, values=names, command=self._on_dictionary_chosen)
        self.menu_dict.grid(row=0, column=1, sticky="w", padx=6, pady=10)

        self.progress = ctk.CTkProgressBar(header, mode="indeterminate", determinate_speed=1.2)
        self.progress.grid(row=0, column=2, sticky="e", padx=(0, 6), pady=10)

        self.lbl_status = ctk.CTkLabel(header, text="Status: —", anchor="e")
        self.lbl_status.grid(row=0, column=3, sticky="e", padx=12, pady=10)

    def _build_search(self) -> None:
        box = ctk.CTkFrame(self, corner_radius=10)
        box.grid(row=1, column=0, sticky="ew", padx=12, pady=6)
        box.grid_columnconfigure(0, weight=1)

        self.entry_query = ctk.CTkEntry(box, placeholder_text="Search…")
        self.entry_query.grid(row=0, column=0, sticky="ew", padx=12, pady=10)
        self.entry_query.bind("<KeyRelease>", self._on_query_changed)

    def _build_results(self) -> None:
        frame = ctk.CTkFrame(self, corner_radius=10)
        frame.grid(row=2, column=0, sticky="nsew", padx=12, pady=6)
        frame.grid_columnconfigure(0, weight=1)
        frame.grid_rowconfigure(0, weight=1)

        self.txt_results = ctk.CTkTextbox(frame, wrap="none", font=self.font_mono)
        self.txt_results.grid(row=0, column=0, sticky="nsew", padx=12, pady=12)
        self.txt_results.tag_config("word", foreground="#6ee7ff")
        self.txt_results.tag_config("matched", underline=True)
        self.txt_results.tag_config("selected", background="#1f2a36")
        self.txt_results.configure(state="disabled")
        self.txt_results.bind("<Configure>", self._on_results_resized)
        self.txt_results.bind("<MouseWheel>", self._on_wheel)
        self.txt_results.bind("<Button-4>", lambda _e: self._scroll_steps(-1))
        self.txt_results.bind("<Button-5>", lambda _e: self._scroll_steps(1))

    def _build_log(self) -> None:
        frame = ctk.CTkFrame(self, corner_radius=10)
        frame.grid(row=3, column=0, sticky="nsew", padx=12, pady=(6, 12))
        frame.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(frame, text="Event log", font=self.font_label).grid(
            row=0, column=0, sticky="w", padx=12, pady=(10, 2)
        )
        self.txt_log = ctk.CTkTextbox(frame, height=90, wrap="word", font=ctk.CTkFont(size=12))
        self.txt_log.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0, 12))

    def _bind_keys(self) -> None:
        keys = {
            "<Up>": Action.DEFINITION_PREVIOUS,
            "<Down>": Action.DEFINITION_NEXT,
            "<Alt-Up>": Action.ENTRY_PREVIOUS,
            "<Alt-Down>": Action.ENTRY_NEXT,
            "<Prior>": Action.PAGE_PREVIOUS,
            "<Next>": Action.PAGE_NEXT,
        }
        for seq, action in keys.items():
            self.bind(seq, lambda _e, a=action: self._act(a))
        self.bind("<Control-Tab>", lambda _e: self._switch(self.session.switch_to_last))
        self.bind("<Control-Prior>", lambda _e: self._switch(lambda: self.session.cycle(-1)))
        self.bind("<Control-Next>", lambda _e: self._switch(lambda: self.session.cycle(1)))

    # --------- loading pipeline (threaded) ---------

    def start_loading(self) -> None:
        if self._loading_thread and self._loading_thread.is_alive():
            return
        self._set_status(f"Loading {len(self.session.registry)} dictionaries…")
        for slot in self.session.registry:
            self._log(f"Opening {shorten_path(slot.path)}")
        self.progress.start()
        self._loading_thread = threading.Thread(target=self._load_worker, daemon=True)
        self._loading_thread.start()

    def _load_worker(self) -> None:
        try:
            self.session.registry.load()
        except Exception as exc:
            self.after(0, lambda e=exc: self._on_load_error(e))
            return
        self.after(0, self._on_load_ok)

    def _on_load_ok(self) -> None:
        self.progress.stop()
        self._loaded = True
        self.menu_dict.configure(values=[s.display_name for s in self.session.registry])
        self.session.select(self.session.registry.current_index)
        words = sum(len(s.dictionary) for s in self.session.registry if s.dictionary)
        self._set_status(f"Loaded {words:,} words.")
        self._log("Dictionaries ready.")
        self._sync()
        self.entry_query.focus_set()

    def _on_load_error(self, exc: Exception) -> None:
        self.progress.stop()
        self._set_status("Error while loading dictionaries.")
        self._log(f"ERROR: {exc}")
        mb.showerror("Load error", f"Failed to load dictionaries.\n{exc}")
        self.load_failed = True
        self.destroy()

    # --------- search and navigation ---------

    def _on_query_changed(self, ev=None) -> None:
        if ev is not None and ev.keysym in ("Up", "Down", "Prior", "Next", "Tab"):
            return
        if self._search_after_id is not None:
            self.after_cancel(self._search_after_id)
        self._search_after_id = self.after(160, self._do_search)

    def _do_search(self) -> None:
        self._search_after_id = None
        if not self._loaded:
            return
        q = self.entry_query.get()
        if q != self.session.view.input.text:
            self.session.view.set_input(q)
            self._render()

    def _act(self, action: Action) -> str:
        if self._loaded:
            self.session.view.process_action(action)
            self._render()
        return "break"

    def _scroll_steps(self, n: int) -> str:
        if self._loaded:
            self.session.view.scroll_steps(n)
            self._render()
        return "break"

    def _on_wheel(self, ev) -> str:
        return self._scroll_steps(-1 if ev.delta > 0 else 1)

    def _switch(self, op) -> str:
        if self._loaded and op():
            self._sync()
        return "break"

    def _on_dictionary_chosen(self, name: str) -> None:
        for i, slot in enumerate(self.session.registry):
            if slot.display_name == name:
                self._switch(lambda i=i: self.session.select(i))
                return

    def _on_results_resized(self, ev) -> None:
        if not self._loaded:
            return
        line = max(1, self.font_mono.metrics("linespace"))
        char = max(1, self.font_mono.measure("m"))
        self.session.view.resize(max(1, ev.height // line), max(20, ev.width // char))
        self._render()

    # --------- misc UI helpers ---------

    def _sync(self) -> None:
        slot = self.session.current
        if slot is not None:
            self.menu_dict.set(slot.display_name)
            self._log(f"Showing {slot.display_name}")
        self._render()

    def _render(self) -> None:
        view = self.session.view
        self.txt_results.configure(state="normal")
        self.txt_results.delete("0.0", "end")
        for row in view.rows():
            self._insert_row(row, view.word_column)
        self.txt_results.configure(state="disabled")
        if view.input.text and not view.found:
            self._set_status(f"No exact match for {view.input.text!r}")
        elif view.dictionary is not None:
            self._set_status(f"{view.top_position + 1:,} / {len(view.dictionary):,}")

    def _insert_row(self, row: Row, word_column: int) -> None:
        tags = ("selected",) if row.selected else ()
        word = row.word or ""
        matched = word.encode("utf-8")[:row.matched].decode("utf-8", errors="ignore")
        self.txt_results.insert("end", matched, tags + ("word", "matched"))
        self.txt_results.insert("end", word[len(matched):].ljust(word_column - len(matched)), tags + ("word",))
        self.txt_results.insert("end", row.text + "\n", tags)

    def _set_status(self, text: str) -> None:
        self.lbl_status.configure(text=f"Status: {text}")

    def _log(self, msg: str) -> None:
        self.txt_log.insert("end", msg + "\n")
        self.txt_log.see("end")

    # --------- lifecycle ---------

    def _on_close(self) -> None:
        self.destroy()


def run(session: Session) -> int:
    app = DictionaryApp(session)
    app.start_loading()
    app.mainloop()
    return 1 if app.load_failed else 0
