from __future__ import annotations
import configparser
import logging
import os
from typing import List, Tuple

log = logging.getLogger(__name__)

DEFAULT_OFFSET_BITS: int = 32

# Drop synonyms pointing past the end of the main index instead of failing.
DROP_INVALID_SYNONYMS: bool = True

# /* ~~~ thread pool sizing for parallel work ~~~ */
WORDS_PER_WORKER: int = 1024

# /* ~~~ view-model defaults (rows for a terminal) ~~~ */
VIEW_HEIGHT: int = 24
VIEW_WIDTH: int = 80
WORD_COLUMN: int = 24
SCROLL_STEP: int = 1

# Scroll up by a third of the viewport after a search when a collator is active
CENTER_ON_SEARCH: bool = False

# /* ~~~ configuration file ~~~ */
CONFIG_ENV = "SDVIEW_CONFIG"
CONFIG_PATH = os.path.join("~", ".config", "sdview", "sdview.conf")
CONFIG_SECTION = "Dictionaries"


def worker_count(n_items: int, per_worker: int = 1) -> int:
    """Pool size bounded by the CPU count so that no worker gets less than
    `per_worker` items (at least one worker)."""
    workers = os.cpu_count() or 1
    while workers > 1 and workers * per_worker > n_items:
        workers -= 1
    return workers


def config_path() -> str:
    return os.path.expanduser(os.environ.get(CONFIG_ENV) or CONFIG_PATH)


def load_dictionaries(path: str | None = None) -> List[Tuple[str, str]]:
    """
    Read the [Dictionaries] section of the configuration file.

    Returns (name, ifo_path) pairs in file order. A missing file or section
    yields an empty list. Relative paths are taken relative to the file.
    """
    path = path or config_path()
    if not os.path.exists(path):
        log.info("No configuration file at %s", path)
        return []

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep dictionary names as written
    with open(path, "r", encoding="utf-8") as f:
        parser.read_file(f)
    if not parser.has_section(CONFIG_SECTION):
        return []

    base = os.path.dirname(os.path.abspath(path))
    out: List[Tuple[str, str]] = []
    for name, value in parser.items(CONFIG_SECTION):
        ifo = os.path.expanduser(value.strip())
        if not os.path.isabs(ifo):
            ifo = os.path.join(base, ifo)
        out.append((name, ifo))
    return out
