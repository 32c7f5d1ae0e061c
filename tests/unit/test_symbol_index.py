"""Unit tests for libboot.symbol_index."""

from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from libboot.errors import LoadError, NotLoadedError
from libboot.models import SymbolKind
from libboot.symbol_index import SymbolIndex

MAPS: dict[str, dict[str, Any]] = {
    "core": {
        "Future": {"kind": "class", "path": "future/future.py"},
        "id_of": {"kind": "function", "path": "utils.py"},
        "Shared": {"kind": "class", "path": "shared.py"},
    },
    "extra": {
        "Widget": {"kind": "class", "path": "widget/widget.py"},
        "Shared": {"kind": "class", "path": "extra_shared.py"},
        "VERSION": {"kind": "constant", "path": "version.py"},
    },
}


class CountingSource:
    def __init__(self, maps: dict[str, Any]) -> None:
        self.maps = maps
        self.calls: list[str] = []

    def __call__(self, library: str) -> Any:
        self.calls.append(library)
        if library not in self.maps:
            raise NotLoadedError(library)
        return self.maps[library]


@pytest.fixture()
def source() -> CountingSource:
    return CountingSource(MAPS)


@pytest.fixture()
def index(source: CountingSource) -> SymbolIndex:
    return SymbolIndex(source)


# ---------------------------------------------------------------------------
# ensure_loaded
# ---------------------------------------------------------------------------


class TestEnsureLoaded:
    def test_fetches_once(self, index: SymbolIndex, source: CountingSource) -> None:
        assert not index.is_loaded("core")
        first = index.ensure_loaded("core")
        second = index.ensure_loaded("core")
        assert first is second
        assert source.calls == ["core"]
        assert index.is_loaded("core")

    def test_empty_map_is_cached(self) -> None:
        source = CountingSource({"empty": {}})
        index = SymbolIndex(source)
        assert index.ensure_loaded("empty") == {}
        index.ensure_loaded("empty")
        assert source.calls == ["empty"]

    def test_source_returning_none_raises(self) -> None:
        index = SymbolIndex(lambda library: None)
        with pytest.raises(LoadError, match="did not register a symbol map"):
            index.ensure_loaded("core")

    def test_invalid_map_raises_load_error(self) -> None:
        index = SymbolIndex(lambda library: {"Future": {"kind": "class", "path": "/abs.py"}})
        with pytest.raises(LoadError, match="is invalid"):
            index.ensure_loaded("core")
        assert not index.is_loaded("core")

    def test_unexpected_source_error_becomes_load_error(self) -> None:
        def broken(library: str) -> Any:
            raise OSError("disk on fire")

        index = SymbolIndex(broken)
        with pytest.raises(LoadError) as exc_info:
            index.ensure_loaded("core")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_bootloader_errors_propagate_unchanged(self, index: SymbolIndex) -> None:
        with pytest.raises(NotLoadedError):
            index.ensure_loaded("unknown")

    def test_failed_fetch_is_retried(self) -> None:
        attempts: list[str] = []

        def flaky(library: str) -> Any:
            attempts.append(library)
            if len(attempts) == 1:
                return None
            return MAPS["core"]

        index = SymbolIndex(flaky)
        with pytest.raises(LoadError):
            index.ensure_loaded("core")
        assert "Future" in index.ensure_loaded("core")
        assert attempts == ["core", "core"]


# ---------------------------------------------------------------------------
# resolve / symbols
# ---------------------------------------------------------------------------


class TestResolve:
    def test_found(self, index: SymbolIndex) -> None:
        location = index.resolve("core", "Future")
        assert location is not None
        assert location.library == "core"
        assert location.kind is SymbolKind.CLASS
        assert location.path == "future/future.py"

    def test_not_found_is_none(self, index: SymbolIndex) -> None:
        assert index.resolve("core", "Nope") is None

    def test_symbols_filtered_by_kind(self, index: SymbolIndex) -> None:
        names = [loc.symbol for loc in index.symbols("core", SymbolKind.CLASS)]
        assert names == ["Future", "Shared"]

    def test_symbols_unfiltered_sorted(self, index: SymbolIndex) -> None:
        names = [loc.symbol for loc in index.symbols("extra")]
        assert names == ["Shared", "VERSION", "Widget"]

    def test_install_bypasses_source(self, index: SymbolIndex, source: CountingSource) -> None:
        index.install("manual", {"Thing": {"kind": "class", "path": "thing.py"}})
        assert index.resolve("manual", "Thing") is not None
        assert source.calls == []


# ---------------------------------------------------------------------------
# find_owner
# ---------------------------------------------------------------------------


class TestFindOwner:
    def test_finds_across_libraries(self, index: SymbolIndex) -> None:
        location = index.find_owner("Widget", ["core", "extra"])
        assert location is not None
        assert location.library == "extra"

    def test_first_library_claims_shared_symbol(self, index: SymbolIndex) -> None:
        location = index.find_owner("Shared", ["core", "extra"])
        assert location is not None
        assert location.library == "core"
        assert location.path == "shared.py"

    def test_unclaimed_is_none(self, index: SymbolIndex) -> None:
        assert index.find_owner("Nope", ["core", "extra"]) is None

    def test_stops_fetching_once_found(self, index: SymbolIndex, source: CountingSource) -> None:
        index.find_owner("Future", ["core", "extra"])
        assert source.calls == ["core"]

    def test_each_library_fetched_once(self, index: SymbolIndex, source: CountingSource) -> None:
        index.find_owner("Nope", ["core", "extra"])
        index.find_owner("Widget", ["core", "extra"])
        index.find_owner("Other", ["core", "extra"])
        assert source.calls == ["core", "extra"]

    def test_late_library_is_merged(self, index: SymbolIndex) -> None:
        assert index.find_owner("Widget", ["core"]) is None
        location = index.find_owner("Widget", ["core", "extra"])
        assert location is not None
        assert location.library == "extra"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentFetch:
    def test_concurrent_first_references_fetch_once(self) -> None:
        calls: list[str] = []
        started = threading.Event()

        def slow(library: str) -> Any:
            calls.append(library)
            started.set()
            time.sleep(0.05)
            return MAPS["core"]

        index = SymbolIndex(slow)
        results: list[Any] = []
        threads = [
            threading.Thread(target=lambda: results.append(index.ensure_loaded("core")))
            for _ in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert started.is_set()
        assert calls == ["core"]
        assert len(results) == 4
        assert all(result is results[0] for result in results)
