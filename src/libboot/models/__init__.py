from __future__ import annotations

from libboot.models.library import Library
from libboot.models.symbols import (
    LibraryMap,
    SymbolEntry,
    SymbolKind,
    SymbolLocation,
    parse_library_map,
)

__all__ = [
    # library
    "Library",
    # symbols
    "LibraryMap",
    "SymbolEntry",
    "SymbolKind",
    "SymbolLocation",
    "parse_library_map",
]
