"""Per-library symbol maps, fetched lazily and cached for the process lifetime.

A map is fetched from its *map source* (a callable supplied by the owner of
the index) the first time any symbol of that library is requested. Maps are
assumed immutable once read, so a successful fetch is never repeated. A failed
fetch caches nothing and the next request tries again.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from libboot.errors import BootloaderError, LoadError
from libboot.models.symbols import LibraryMap, SymbolKind, SymbolLocation, parse_library_map

log = structlog.get_logger()

MapSource = Callable[[str], Mapping[str, Any] | None]


class SymbolIndex:
    def __init__(self, source: MapSource) -> None:
        self._source = source
        self._maps: dict[str, LibraryMap] = {}
        # symbol → owning library, unioned from each library's map on demand
        self._owners: dict[str, str] = {}
        self._merged: set[str] = set()
        self._lock = threading.RLock()

    def is_loaded(self, library: str) -> bool:
        return library in self._maps

    def ensure_loaded(self, library: str) -> LibraryMap:
        """Return the library's map, fetching it from the source at most once."""
        cached = self._maps.get(library)
        if cached is not None:
            return cached

        with self._lock:
            # Another caller may have populated it while we waited.
            cached = self._maps.get(library)
            if cached is not None:
                return cached

            try:
                raw = self._source(library)
            except BootloaderError:
                raise
            except Exception as exc:
                raise LoadError(
                    f"Symbol map for library {library!r} could not be read: {exc}"
                ) from exc

            if raw is None:
                raise LoadError(f"Library {library!r} did not register a symbol map.")
            return self.install(library, raw)

    def install(self, library: str, raw: Mapping[str, Any]) -> LibraryMap:
        """Validate ``raw`` and cache it as the map for ``library``."""
        try:
            parsed = parse_library_map(raw)
        except ValidationError as exc:
            raise LoadError(f"Symbol map for library {library!r} is invalid: {exc}") from exc

        with self._lock:
            self._maps[library] = parsed
        log.info("library_map_loaded", library=library, symbols=len(parsed))
        return parsed

    def resolve(self, library: str, symbol: str) -> SymbolLocation | None:
        """Look up ``symbol`` in one library. ``None`` when the library does not define it."""
        entry = self.ensure_loaded(library).get(symbol)
        if entry is None:
            return None
        return SymbolLocation(library=library, symbol=symbol, kind=entry.kind, path=entry.path)

    def symbols(self, library: str, kind: SymbolKind | None = None) -> list[SymbolLocation]:
        return [
            SymbolLocation(library=library, symbol=name, kind=entry.kind, path=entry.path)
            for name, entry in sorted(self.ensure_loaded(library).items())
            if kind is None or entry.kind == kind
        ]

    def find_owner(self, symbol: str, libraries: Iterable[str]) -> SymbolLocation | None:
        """Find the library defining ``symbol`` among ``libraries``.

        Libraries are merged into the aggregated owner table in the order given;
        the first one to claim a symbol owns it. Libraries already merged are not
        fetched again, so only libraries registered since the last lookup cost
        a map fetch.
        """
        with self._lock:
            owner = self._owners.get(symbol)
            if owner is None:
                for library in libraries:
                    if library in self._merged:
                        continue
                    for name in self.ensure_loaded(library):
                        self._owners.setdefault(name, library)
                    self._merged.add(library)
                    if symbol in self._owners:
                        break
                owner = self._owners.get(symbol)

        if owner is None:
            return None
        return self.resolve(owner, symbol)
