"""The process-wide default bootloader.

Module-level entry points act on :func:`get_bootloader`: the bootloader that
is executing a file in the current context, otherwise the process default,
which is created from ``Settings()`` on first use. Tests and embedding hosts
install their own instance with :func:`set_bootloader`.
"""

from __future__ import annotations

import threading

from libboot.config import Settings
from libboot.loader import Bootloader, active_bootloader
from libboot.log_config import configure_logging

_default: Bootloader | None = None
_default_lock = threading.Lock()


def create_bootloader(settings: Settings | None = None) -> Bootloader:
    """Build a bootloader and apply its logging configuration."""
    settings = settings or Settings()
    configure_logging(settings.logging)
    return Bootloader(settings)


def get_bootloader() -> Bootloader:
    active = active_bootloader()
    if active is not None:
        return active

    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = create_bootloader()
    return _default


def set_bootloader(bootloader: Bootloader | None) -> Bootloader | None:
    """Replace the process default; ``None`` resets to lazy creation. Returns the previous one."""
    global _default
    with _default_lock:
        previous, _default = _default, bootloader
    return previous
