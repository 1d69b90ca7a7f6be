from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from . import config as CFG
from .dictionary import Dictionary

log = logging.getLogger(__name__)


@dataclass
class DictionarySlot:
    path: str
    name: Optional[str] = None
    dictionary: Optional[Dictionary] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.dictionary is not None:
            return self.dictionary.book_name
        return os.path.splitext(os.path.basename(self.path))[0]

    @property
    def loaded(self) -> bool:
        return self.dictionary is not None


SwitchListener = Callable[[int, DictionarySlot], None]


class Registry:
    """
    The list of dictionaries the viewer works with and which one is active.

    load() opens all of them on a thread pool; results are joined before it
    returns. Switching notifies listeners with (index, slot).
    """

    def __init__(self, slots: Iterable[DictionarySlot] = ()) -> None:
        self.slots: List[DictionarySlot] = list(slots)
        self.current_index = 0
        self.last_index = 0
        self._listeners: List[SwitchListener] = []

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> "Registry":
        return cls(DictionarySlot(path=p) for p in paths)

    @classmethod
    def from_config(cls, path: str | None = None) -> "Registry":
        return cls(DictionarySlot(path=p, name=n) for n, p in CFG.load_dictionaries(path))

    def add(self, path: str, name: str | None = None) -> DictionarySlot:
        slot = DictionarySlot(path=path, name=name)
        self.slots.append(slot)
        return slot

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[DictionarySlot]:
        return iter(self.slots)

    def __getitem__(self, i: int) -> DictionarySlot:
        return self.slots[i]

    # ------------- loading -------------

    # /* ~~~ Open every dictionary in parallel; the first failure aborts the batch ~~~ */
    def load(self, workers: Optional[int] = None) -> None:
        pending = [s for s in self.slots if not s.loaded]
        if not pending:
            return
        workers = workers or CFG.worker_count(len(pending))
        log.info("Loading %d dictionaries with %d workers", len(pending), workers)

        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = [(slot, ex.submit(Dictionary.open, slot.path)) for slot in pending]
            results: List[Tuple[DictionarySlot, Dictionary]] = []
            error: Optional[BaseException] = None
            for slot, fut in futures:
                exc = fut.exception()
                if exc is not None:
                    error = error or exc
                    continue
                results.append((slot, fut.result()))

        if error is not None:
            for _, d in results:
                d.close()
            raise error

        for slot, d in results:
            slot.dictionary = d
        log.info("Registry loaded: %s", ", ".join(s.display_name for s in self.slots))

    def close(self) -> None:
        for slot in self.slots:
            if slot.dictionary is not None:
                slot.dictionary.close()
                slot.dictionary = None

    # ------------- switching -------------

    @property
    def current(self) -> Optional[DictionarySlot]:
        if not self.slots:
            return None
        return self.slots[self.current_index]

    def on_switch(self, listener: SwitchListener) -> None:
        self._listeners.append(listener)

    def select(self, index: int) -> bool:
        if not 0 <= index < len(self.slots):
            return False
        if index != self.current_index:
            self.last_index = self.current_index
            self.current_index = index
        for listener in self._listeners:
            listener(index, self.slots[index])
        return True

    def switch_to_last(self) -> bool:
        return self.select(self.last_index)

    def cycle(self, step: int = 1) -> bool:
        if not self.slots:
            return False
        return self.select((self.current_index + step) % len(self.slots))
