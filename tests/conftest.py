"""Shared fixtures: on-disk library trees and an isolated bootloader."""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING, Any

import pytest

from libboot import MAP_FILENAME, MARKER_FILENAME, UNIT_ENTRY_FILENAME, set_bootloader
from libboot.config import Settings
from libboot.loader import Bootloader

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


class LibraryTree:
    """Builds a library directory on disk.

    Files written with ``record(tag)`` append ``tag`` to a shared events file
    when executed, so tests can count how often top-level code ran.
    """

    def __init__(self, root: Path, name: str, events: Path) -> None:
        self.root = root
        self.name = name
        self.events_path = events
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def marker(self) -> Path:
        return self.root / MARKER_FILENAME

    def record(self, tag: str) -> str:
        return f'with open({str(self.events_path)!r}, "a") as _fh:\n    _fh.write("{tag}\\n")\n'

    def events(self) -> list[str]:
        if not self.events_path.exists():
            return []
        return self.events_path.read_text().splitlines()

    def write(self, relative: str, body: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(body))
        return path

    def write_marker(self, body: str = "") -> Path:
        header = f"import libboot\n\nlibboot.register_library({self.name!r}, __file__)\n"
        return self.write(MARKER_FILENAME, header + self.record("init") + textwrap.dedent(body))

    def write_unit(self, unit: str, body: str = "") -> Path:
        return self.write(f"{unit}/{UNIT_ENTRY_FILENAME}", self.record(unit) + textwrap.dedent(body))

    def write_map(self, symbols: dict[str, Any]) -> Path:
        return self.write(
            MAP_FILENAME,
            self.record("map") + f"import libboot\n\nlibboot.register_library_map({symbols!r})\n",
        )


@pytest.fixture()
def events_file(tmp_path: Path) -> Path:
    return tmp_path / "events.log"


@pytest.fixture()
def library(tmp_path: Path, events_file: Path) -> LibraryTree:
    """Library ``mylib`` with a marker file that registers it."""
    tree = LibraryTree(tmp_path / "mylib", "mylib", events_file)
    tree.write_marker()
    return tree


@pytest.fixture()
def make_library(tmp_path: Path, events_file: Path):
    def _make(name: str, directory: str | None = None) -> LibraryTree:
        tree = LibraryTree(tmp_path / (directory or name), name, events_file)
        tree.write_marker()
        return tree

    return _make


@pytest.fixture()
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.delenv("LIBBOOT__LIBRARY_ROOT", raising=False)
    return Settings()


@pytest.fixture()
def bootloader(settings: Settings) -> Iterator[Bootloader]:
    """A fresh bootloader, also installed as the process default."""
    loader = Bootloader(settings)
    previous = set_bootloader(loader)
    yield loader
    set_bootloader(previous)
