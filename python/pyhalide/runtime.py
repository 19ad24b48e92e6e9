"""
Access to the Halide runtime shared library.

Only the entry points the buffer layer needs are bound here; everything else
in the runtime is driven by the engine itself.
"""

from __future__ import annotations

import ctypes
import logging
import sys
from pathlib import Path
from typing import Optional

from pyhalide.config import Settings
from pyhalide.errors import EngineError, RuntimeNotFoundError

logger = logging.getLogger("pyhalide.runtime")

_runtime: Optional[ctypes.CDLL] = None


def _library_name() -> str:
    if sys.platform == "darwin":
        return "libHalide.dylib"
    if sys.platform == "win32":
        return "Halide.dll"
    return "libHalide.so"


def runtime_library_path(settings: Settings = None) -> Path:
    """Locate the Halide runtime library.

    Resolution order:
    1) `HALIDE_RUNTIME_LIBRARY` (explicit file)
    2) `HALIDE_ROOT/lib/<libHalide>`
    """
    if settings is None:
        settings = Settings.from_env()
    if settings.runtime_library is not None:
        path = settings.runtime_library.resolve()
        if not path.is_file():
            raise RuntimeNotFoundError(f"HALIDE_RUNTIME_LIBRARY does not exist: {path}")
        return path
    if settings.halide_root is not None:
        path = (settings.halide_root / "lib" / _library_name()).resolve()
        if not path.is_file():
            raise RuntimeNotFoundError(f"Halide runtime not found under HALIDE_ROOT: {path}")
        return path
    raise RuntimeNotFoundError(
        "Halide runtime library not configured. "
        "Set HALIDE_RUNTIME_LIBRARY=/path/to/libHalide or HALIDE_ROOT=/path/to/halide."
    )


def load_runtime(settings: Settings = None) -> ctypes.CDLL:
    """Load the runtime once and declare the entry points used by pyhalide."""
    global _runtime
    if _runtime is None:
        path = runtime_library_path(settings)
        logger.info("loading Halide runtime from %s", path)
        lib = ctypes.CDLL(str(path))
        # int halide_copy_to_host(void *user_context, struct halide_buffer_t *buf)
        lib.halide_copy_to_host.argtypes = [ctypes.c_void_p, ctypes.c_void_p]
        lib.halide_copy_to_host.restype = ctypes.c_int
        _runtime = lib
    return _runtime


def reset_runtime() -> None:
    """Forget the loaded runtime so the next call re-resolves it."""
    global _runtime
    _runtime = None


def copy_to_host(buf) -> None:
    """Copy a device-dirty buffer back to host memory.

    `buf` is a `pyhalide.buffer.Buffer` (or anything exposing
    `_as_parameter_` as a `halide_buffer_t*`).
    """
    lib = load_runtime()
    status = lib.halide_copy_to_host(None, buf._as_parameter_)
    if status != 0:
        raise EngineError(f"halide_copy_to_host failed with status {status}", status=status)
