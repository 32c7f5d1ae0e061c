from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator


class Library(BaseModel):
    """A registered library: a name bound to one root directory."""

    model_config = ConfigDict(frozen=True)

    name: str
    root: Path  # Absolute directory holding __library_init__.py

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Library name must not be empty")
        return v

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: Path) -> Path:
        if not v.is_absolute():
            raise ValueError(f"Library root must be absolute: {str(v)!r}")
        return v
