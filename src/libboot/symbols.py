"""Lazy symbol namespace.

Any attribute of this module that is not defined here is resolved through the
symbol-miss hook of the active bootloader::

    from libboot.symbols import HTTPFuture

loads the file that a registered library maps ``HTTPFuture`` to and returns
the class. Names no library claims raise ``AttributeError`` as usual.
"""

from __future__ import annotations

from typing import Any

from libboot.errors import UnresolvedSymbolError
from libboot.runtime import get_bootloader

__all__: list[str] = []


def __getattr__(name: str) -> Any:
    if name.startswith("__"):
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    try:
        return get_bootloader().resolve_symbol(name)
    except UnresolvedSymbolError as exc:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from exc
