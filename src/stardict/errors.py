from __future__ import annotations
import enum
import io


class ErrorKind(enum.Enum):
    FILE_NOT_FOUND = "file not found"
    INVALID_HEADER = "invalid header"
    INVALID_DATA = "invalid data"
    IO = "i/o error"
    NOT_SUPPORTED = "not supported"


class StardictError(Exception):
    """Base class for everything the library raises on bad input or I/O."""
    kind: ErrorKind = ErrorKind.INVALID_DATA

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class FileNotFound(StardictError, FileNotFoundError):
    kind = ErrorKind.FILE_NOT_FOUND


class InvalidHeader(StardictError, ValueError):
    kind = ErrorKind.INVALID_HEADER


class InvalidData(StardictError, ValueError):
    kind = ErrorKind.INVALID_DATA


class IoError(StardictError, OSError):
    kind = ErrorKind.IO


class NotSupported(StardictError, io.UnsupportedOperation):
    kind = ErrorKind.NOT_SUPPORTED
