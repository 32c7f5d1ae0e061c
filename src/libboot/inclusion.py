"""Execute a single Python source file into a fresh module.

``execute_file`` never raises for an ordinary failure. It reports one of three
outcomes so callers can treat a missing file differently from a file that is
present but broken:

- ``INCLUDED``: the file ran to completion; ``module`` is set.
- ``NOT_FOUND``: there is no regular file at the path.
- ``FAILED``: the file did not compile or raised while executing; ``error`` is set.

``BootloaderError`` raised by the executed file (a nested load that failed)
propagates unchanged so the innermost failure reaches the caller.
"""

from __future__ import annotations

import hashlib
import sys
from dataclasses import dataclass
from enum import StrEnum
from importlib.machinery import SourceFileLoader
from importlib.util import module_from_spec, spec_from_file_location
from typing import TYPE_CHECKING

import structlog

from libboot.errors import BootloaderError

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

log = structlog.get_logger()


class IncludeStatus(StrEnum):
    INCLUDED = "included"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class IncludeResult:
    status: IncludeStatus
    path: Path
    module: ModuleType | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is IncludeStatus.INCLUDED


def module_name_for(path: Path) -> str:
    """Stable ``sys.modules`` key for an included file (SHA-256 of its path)."""
    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()
    return f"libboot_include_{digest[:16]}"


def execute_file(path: Path, module_name: str | None = None) -> IncludeResult:
    if not path.is_file():
        log.debug("include_not_found", path=str(path))
        return IncludeResult(IncludeStatus.NOT_FOUND, path)

    name = module_name or module_name_for(path)
    # An explicit loader accepts any suffix, not just .py
    loader = SourceFileLoader(name, str(path))
    spec = spec_from_file_location(name, path, loader=loader)
    if spec is None:
        exc = ImportError(f"No module spec for {str(path)!r}")
        log.error("include_failed", path=str(path), error=str(exc))
        return IncludeResult(IncludeStatus.FAILED, path, error=exc)

    module = module_from_spec(spec)
    sys.modules[name] = module
    try:
        loader.exec_module(module)
    except BootloaderError:
        sys.modules.pop(name, None)
        raise
    except Exception as exc:
        sys.modules.pop(name, None)
        event = "include_syntax_error" if isinstance(exc, SyntaxError) else "include_failed"
        log.error(event, path=str(path), exc_info=True)
        return IncludeResult(IncludeStatus.FAILED, path, error=exc)

    return IncludeResult(IncludeStatus.INCLUDED, path, module=module)
