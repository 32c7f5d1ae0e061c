"""Load coordinator: guarded, idempotent inclusion of library files.

A ``Bootloader`` owns one library registry, one symbol index, the set of
files it has included and the load context stack. Each load moves through
``requested → context pushed → including → completed | failed``; the context
is popped on every exit path and a file is recorded as included only once it
has executed successfully.

While a bootloader executes a file it is the *active* bootloader for the
current context, so the module-level functions in :mod:`libboot` called from
that file act on it rather than on the process default.
"""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from libboot.config import Settings
from libboot.errors import InvalidStateError, LoadError, UnresolvedSymbolError
from libboot.inclusion import IncludeStatus, execute_file, module_name_for
from libboot.registry import MARKER_FILENAME, LibraryRegistry
from libboot.symbol_index import SymbolIndex

if TYPE_CHECKING:
    from types import ModuleType

    from libboot.models.library import Library
    from libboot.models.symbols import LibraryMap, SymbolKind, SymbolLocation

log = structlog.get_logger()

MAP_FILENAME = "__library_map__.py"
UNIT_ENTRY_FILENAME = "__init__.py"

_active: ContextVar[Bootloader | None] = ContextVar("libboot_active_bootloader", default=None)


def active_bootloader() -> Bootloader | None:
    """The bootloader currently executing a file in this context, if any."""
    return _active.get()


class Bootloader:
    def __init__(
        self,
        settings: Settings | None = None,
        registry: LibraryRegistry | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = registry or LibraryRegistry()
        self.index = SymbolIndex(self._read_library_map)

        self._included: dict[Path, ModuleType] = {}
        self._including: set[Path] = set()
        self._stack: list[Path] = []
        self._map_targets: list[str] = []
        self._pending_maps: dict[str, Mapping[str, Any]] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_library(self, name: str, marker_path: str | os.PathLike[str]) -> Library:
        with self._lock:
            return self.registry.register(name, marker_path)

    def register_library_map(self, raw_map: Mapping[str, Any]) -> None:
        """Install the symbol map for the library whose map file is executing."""
        with self._lock:
            if not self._map_targets:
                raise InvalidStateError(
                    "register_library_map() may only be called from a library's "
                    f"{MAP_FILENAME} while it is being loaded."
                )
            self._pending_maps[self._map_targets[-1]] = raw_map

    def get_library_map(self, name: str) -> LibraryMap:
        with self._lock:
            return self.index.ensure_loaded(name)

    def get_library_root(self, name: str) -> Path:
        return self.registry.get_root(name)

    def list_libraries(self) -> list[str]:
        return self.registry.list_all()

    def list_symbols(self, name: str, kind: SymbolKind | None = None) -> list[SymbolLocation]:
        with self._lock:
            return self.index.symbols(name, kind)

    def _read_library_map(self, name: str) -> Mapping[str, Any] | None:
        """Map source for the symbol index: execute the library's map file.

        The map file is executed on every fetch (not guarded), since it only
        declares data and a failed validation must be retryable.
        """
        path = self.registry.get_root(name) / MAP_FILENAME
        self._pending_maps.pop(name, None)
        self._map_targets.append(name)
        try:
            self._execute(path)
        except BaseException:
            # A map registered before the file failed must not survive the attempt
            self._pending_maps.pop(name, None)
            raise
        finally:
            self._map_targets.pop()
        return self._pending_maps.pop(name, None)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_library(self, path: str | os.PathLike[str]) -> ModuleType:
        """Execute a library's ``__library_init__.py``.

        A relative ``path`` is placed under ``settings.library_root`` when that
        is configured, so a library tree can be relocated without touching the
        call sites.
        """
        directory = Path(path)
        root = self.settings.library_root
        if root and not directory.is_absolute():
            directory = Path(root) / directory
        with self._lock:
            return self._include(directory / MARKER_FILENAME)

    def load_unit(self, library: str, unit: str) -> ModuleType:
        with self._lock, self._context(self.registry.get_root(library) / unit):
            return self.load_source(UNIT_ENTRY_FILENAME)

    def load_source(self, relative: str) -> ModuleType:
        """Include ``relative`` from the directory of the unit being loaded."""
        with self._lock:
            if not self._stack:
                raise InvalidStateError(
                    f"Can not load source {relative!r}: no unit is being loaded."
                )
            return self._include(self._stack[-1] / relative)

    def unit_exists(self, library: str, unit: str) -> bool:
        path = self.registry.get_root(library) / unit / UNIT_ENTRY_FILENAME
        return path.is_file()

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def autoload(self, symbol: str) -> bool:
        """Symbol-miss hook: load the file defining ``symbol``.

        Returns ``False`` without raising when no registered library claims the
        symbol; reporting the undefined name is left to the caller.
        """
        with self._lock:
            location = self._locate(symbol)
            if location is None:
                log.debug("symbol_unresolved", symbol=symbol)
                return False
            self._load_location(location)
            return True

    def resolve_symbol(self, symbol: str) -> Any:
        """Load and return ``symbol``. Raises ``UnresolvedSymbolError`` if unclaimed."""
        with self._lock:
            location = self._locate(symbol)
            if location is None:
                raise UnresolvedSymbolError(symbol)
            module = self._load_location(location)

        try:
            return getattr(module, symbol)
        except AttributeError:
            raise LoadError(
                f"Library {location.library!r} maps {symbol!r} to {location.path!r}, "
                "but that file does not define it.",
                path=Path(module.__file__ or location.path),
            ) from None

    def _locate(self, symbol: str) -> SymbolLocation | None:
        return self.index.find_owner(symbol, self.registry.list_all())

    def _load_location(self, location: SymbolLocation) -> ModuleType:
        directory = self.registry.get_root(location.library) / location.unit
        with self._context(directory):
            module = self.load_source(location.source)
        log.debug(
            "symbol_autoloaded",
            symbol=location.symbol,
            library=location.library,
            path=location.path,
        )
        return module

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def included_files(self) -> tuple[Path, ...]:
        return tuple(self._included)

    def is_included(self, path: str | os.PathLike[str]) -> bool:
        return Path(path).resolve() in self._included

    @property
    def stack_depth(self) -> int:
        return len(self._stack)

    @property
    def current_context(self) -> Path | None:
        return self._stack[-1] if self._stack else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _context(self, directory: Path) -> Iterator[Path]:
        self._stack.append(directory)
        try:
            yield directory
        finally:
            self._stack.pop()

    def _include(self, path: Path) -> ModuleType:
        """Guarded inclusion: execute ``path`` at most once per bootloader."""
        target = path.resolve()
        module = self._included.get(target)
        if module is not None:
            log.debug("include_skipped", path=str(target))
            return module
        if target in self._including:
            # Circular include: hand back the partially initialized module.
            partial = sys.modules.get(module_name_for(target))
            if partial is not None:
                return partial

        module = self._execute(target)
        self._included[target] = module
        log.debug("include_complete", path=str(target))
        return module

    def _execute(self, path: Path) -> ModuleType:
        target = path.resolve()
        token = _active.set(self)
        self._including.add(target)
        try:
            result = execute_file(target)
        finally:
            self._including.discard(target)
            _active.reset(token)

        if result.status is IncludeStatus.NOT_FOUND:
            raise LoadError(f"Include of {str(target)!r} failed: file not found.", path=target)
        if result.status is IncludeStatus.FAILED:
            raise LoadError(
                f"Include of {str(target)!r} failed: {result.error}", path=target
            ) from result.error
        assert result.module is not None
        return result.module
