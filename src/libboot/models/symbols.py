from __future__ import annotations

from enum import StrEnum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator


class SymbolKind(StrEnum):
    CLASS = "class"
    FUNCTION = "function"
    CONSTANT = "constant"


class SymbolEntry(BaseModel):
    """Single entry in a library's __library_map__.py."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: SymbolKind
    path: str  # Relative to the library root, "/"-separated

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("path must not be empty")
        candidate = PurePosixPath(v)
        if not candidate.parts:
            raise ValueError(f"path must name a file: {v!r}")
        if candidate.is_absolute() or v.startswith("\\"):
            raise ValueError(f"path must be relative to the library root: {v!r}")
        if ".." in candidate.parts:
            raise ValueError(f"path must not leave the library root: {v!r}")
        return str(candidate)


class SymbolLocation(BaseModel):
    """Result of resolving a symbol: which library and file define it."""

    model_config = ConfigDict(frozen=True)

    library: str
    symbol: str
    kind: SymbolKind
    path: str

    @property
    def unit(self) -> str:
        """Directory of the defining file relative to the library root ("" for the root)."""
        parent = PurePosixPath(self.path).parent
        return "" if str(parent) == "." else str(parent)

    @property
    def source(self) -> str:
        return PurePosixPath(self.path).name


LibraryMap = dict[str, SymbolEntry]

_library_map_adapter: TypeAdapter[LibraryMap] = TypeAdapter(LibraryMap)


def parse_library_map(raw: object) -> LibraryMap:
    """Validate a raw symbol map. Raises ``pydantic.ValidationError``."""
    return _library_map_adapter.validate_python(raw)
