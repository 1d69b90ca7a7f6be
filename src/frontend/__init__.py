"""Viewer session shared by the terminal, web and GUI frontends."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from stardict import config as CFG
from stardict.registry import DictionarySlot, Registry
from stardict.view import ViewModel

log = logging.getLogger(__name__)


class Session:
    """
    One registry plus the view-model showing its active dictionary.

    Owned by a single event loop (REPL, Flask app or Tk mainloop); switching
    dictionaries re-runs the search for the current input in the new one.
    """

    def __init__(self, registry: Registry, *,
                 height: int = CFG.VIEW_HEIGHT,
                 width: int = CFG.VIEW_WIDTH,
                 wrap: bool = False) -> None:
        self.registry = registry
        self.view = ViewModel(height=height, width=width, wrap=wrap)
        registry.on_switch(self._on_switch)

    @classmethod
    def create(cls, paths: Iterable[str] = (), config: str | None = None, **kw) -> "Session":
        """Build an unloaded session from .ifo paths, or the config file when none are given."""
        paths = list(paths)
        registry = Registry.from_paths(paths) if paths else Registry.from_config(config)
        if not len(registry):
            raise ValueError("no dictionaries given and none configured in "
                             f"{config or CFG.config_path()}")
        return cls(registry, **kw)

    # ------------- lifecycle -------------

    def load(self) -> None:
        self.registry.load()
        self.registry.select(self.registry.current_index)

    def close(self) -> None:
        self.view.set_dictionary(None)
        self.registry.close()

    # ------------- switching -------------

    def _on_switch(self, index: int, slot: DictionarySlot) -> None:
        log.info("Switched to %s", slot.display_name)
        self.view.set_dictionary(slot.dictionary)

    @property
    def current(self) -> Optional[DictionarySlot]:
        return self.registry.current

    def select(self, index: int) -> bool:
        return self.registry.select(index)

    def switch_to_last(self) -> bool:
        return self.registry.switch_to_last()

    def cycle(self, step: int = 1) -> bool:
        return self.registry.cycle(step)
