"""Library registration and lazy symbol loading.

A library is a directory containing ``__library_init__.py``. Loading it runs
that file, which registers the library by name::

    # mylib/__library_init__.py
    import libboot

    libboot.register_library("mylib", __file__)

The library's ``__library_map__.py`` declares where each symbol lives::

    libboot.register_library_map({
        "HTTPFuture": {"kind": "class", "path": "future/http.py"},
    })

Symbols are then loaded on first reference, through
``libboot.resolve_symbol("HTTPFuture")`` or ``from libboot.symbols import
HTTPFuture``. Every file is executed at most once per bootloader.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from types import ModuleType
from typing import Any

from libboot.errors import (
    BootloaderError,
    ConfigurationError,
    ErrorCode,
    InvalidStateError,
    LibraryConflictError,
    LoadError,
    NotLoadedError,
    UnresolvedSymbolError,
)
from libboot.loader import MAP_FILENAME, UNIT_ENTRY_FILENAME, Bootloader
from libboot.models import Library, SymbolEntry, SymbolKind, SymbolLocation
from libboot.registry import MARKER_FILENAME
from libboot.runtime import create_bootloader, get_bootloader, set_bootloader


def register_library(name: str, marker_path: str | os.PathLike[str]) -> Library:
    return get_bootloader().register_library(name, marker_path)


def register_library_map(raw_map: Mapping[str, Any]) -> None:
    get_bootloader().register_library_map(raw_map)


def load_library(path: str | os.PathLike[str]) -> ModuleType:
    return get_bootloader().load_library(path)


def require_unit(library: str, unit: str) -> ModuleType:
    return get_bootloader().load_unit(library, unit)


def require_source(relative: str) -> ModuleType:
    return get_bootloader().load_source(relative)


def unit_exists(library: str, unit: str) -> bool:
    return get_bootloader().unit_exists(library, unit)


def autoload(symbol: str) -> bool:
    return get_bootloader().autoload(symbol)


def resolve_symbol(symbol: str) -> Any:
    return get_bootloader().resolve_symbol(symbol)


__all__ = [
    # entry points
    "register_library",
    "register_library_map",
    "load_library",
    "require_unit",
    "require_source",
    "unit_exists",
    "autoload",
    "resolve_symbol",
    # runtime
    "Bootloader",
    "create_bootloader",
    "get_bootloader",
    "set_bootloader",
    # layout
    "MARKER_FILENAME",
    "MAP_FILENAME",
    "UNIT_ENTRY_FILENAME",
    # models
    "Library",
    "SymbolEntry",
    "SymbolKind",
    "SymbolLocation",
    # errors
    "ErrorCode",
    "BootloaderError",
    "ConfigurationError",
    "LibraryConflictError",
    "NotLoadedError",
    "LoadError",
    "InvalidStateError",
    "UnresolvedSymbolError",
]
