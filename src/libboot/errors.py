"""Error taxonomy for library registration and loading.

Every failure raised by libboot is a ``BootloaderError`` carrying a stable
``ErrorCode`` and a ``recoverable`` flag. Only ``LoadError`` is recoverable:
failed includes are never recorded, so re-invoking the load retries the read.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class ErrorCode(StrEnum):
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    LIBRARY_CONFLICT = "LIBRARY_CONFLICT"
    LIBRARY_NOT_LOADED = "LIBRARY_NOT_LOADED"
    LOAD_FAILED = "LOAD_FAILED"
    INVALID_STATE = "INVALID_STATE"
    SYMBOL_UNRESOLVED = "SYMBOL_UNRESOLVED"


class BootloaderError(Exception):
    """Base class for all libboot errors."""

    code: ErrorCode = ErrorCode.INVALID_STATE
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        recoverable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class ConfigurationError(BootloaderError):
    """Malformed registration call, e.g. a path that is not a library marker."""

    code = ErrorCode.INVALID_CONFIGURATION


class LibraryConflictError(BootloaderError):
    """Raised when a library name is registered again from a different root.

    The registration is rejected and the library keeps its original root. This
    usually means two copies of the same library are being loaded into one
    program, which cannot work because their symbols would collide.
    """

    code = ErrorCode.LIBRARY_CONFLICT

    def __init__(self, library: str, old_path: Path, new_path: Path) -> None:
        self.library = library
        self.old_path = old_path
        self.new_path = new_path
        super().__init__(
            f"Library conflict! The library {library!r} has already been loaded "
            f"(from {str(old_path)!r}) but is now being loaded again from a new "
            f"location ({str(new_path)!r}). You can not load multiple copies of "
            "the same library into a program."
        )


class NotLoadedError(BootloaderError):
    code = ErrorCode.LIBRARY_NOT_LOADED

    def __init__(self, library: str) -> None:
        self.library = library
        super().__init__(f"The library {library!r} has not been loaded!")


class LoadError(BootloaderError):
    """A required file could not be included (missing or failed to execute)."""

    code = ErrorCode.LOAD_FAILED
    recoverable = True

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class InvalidStateError(BootloaderError):
    """Caller-discipline bug, e.g. a relative load outside of any unit."""

    code = ErrorCode.INVALID_STATE


class UnresolvedSymbolError(BootloaderError):
    code = ErrorCode.SYMBOL_UNRESOLVED

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"No registered library defines the symbol {symbol!r}.")
