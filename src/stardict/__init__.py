"""Public API for reading, searching and writing StarDict dictionaries."""
from __future__ import annotations

from .dictionary import Dictionary, DictIterator
from .errors import (ErrorKind, FileNotFound, InvalidData, InvalidHeader,
                     IoError, NotSupported, StardictError)
from .generator import Generator, write_dictionary, write_ifo
from .info import list_dictionaries, parse_info
from .models import DecodedEntry, DictionaryInfo, EntryField, FieldType, Version
from .registry import DictionarySlot, Registry
from .view import Action, ViewModel

__version__ = "0.3.0"

__all__ = [
    "Dictionary", "DictIterator", "DictionaryInfo", "DecodedEntry", "EntryField",
    "FieldType", "Version", "Generator", "write_dictionary", "write_ifo", "parse_info",
    "list_dictionaries", "Registry", "DictionarySlot", "ViewModel", "Action",
    "ErrorKind", "StardictError", "FileNotFound", "InvalidData", "InvalidHeader",
    "IoError", "NotSupported", "__version__",
]
