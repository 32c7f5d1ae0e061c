"""Library registry: name → root directory, one location per name."""

from __future__ import annotations

import os
from pathlib import Path

import structlog
from pydantic import ValidationError

from libboot.errors import ConfigurationError, LibraryConflictError, NotLoadedError
from libboot.models.library import Library

log = structlog.get_logger()

MARKER_FILENAME = "__library_init__.py"


class LibraryRegistry:
    """Registered libraries for one bootloader.

    Entries are never removed. A name may be registered again only with the
    same root; any other root raises ``LibraryConflictError`` and the existing
    entry is kept.
    """

    def __init__(self) -> None:
        self._libraries: dict[str, Library] = {}

    def register(self, name: str, marker_path: str | os.PathLike[str]) -> Library:
        marker = Path(marker_path)
        if marker.name != MARKER_FILENAME:
            raise ConfigurationError(
                f"Only directories with a {MARKER_FILENAME} file may be registered "
                f"as libraries (got {str(marker)!r})."
            )

        # abspath is a pure string operation; the marker is not stat'ed here.
        root = Path(os.path.abspath(marker)).parent
        try:
            library = Library(name=name, root=root)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid library registration for {name!r}: {exc}") from exc

        existing = self._libraries.get(name)
        if existing is not None:
            if existing.root != library.root:
                raise LibraryConflictError(name, existing.root, library.root)
            return existing

        self._libraries[name] = library
        log.info("library_registered", library=name, root=str(root))
        return library

    def get(self, name: str) -> Library:
        library = self._libraries.get(name)
        if library is None:
            raise NotLoadedError(name)
        return library

    def get_root(self, name: str) -> Path:
        return self.get(name).root

    def list_all(self) -> list[str]:
        return list(self._libraries)

    def __contains__(self, name: object) -> bool:
        return name in self._libraries

    def __len__(self) -> int:
        return len(self._libraries)
