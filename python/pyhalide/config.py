"""
Environment-driven settings.

    HALIDE_RUNTIME_LIBRARY  explicit path to the Halide runtime shared library
    HALIDE_ROOT             Halide install prefix (library under <root>/lib)
    PYHALIDE_LOG_LEVEL      level for the "pyhalide" logger (e.g. DEBUG)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger("pyhalide.config")


@dataclass(frozen=True)
class Settings:
    runtime_library: Optional[Path] = None
    halide_root: Optional[Path] = None
    log_level: Optional[str] = None

    @staticmethod
    def from_env(env: Mapping[str, str] = None) -> "Settings":
        if env is None:
            env = os.environ

        def _path(name: str) -> Optional[Path]:
            value = env.get(name)
            if not value:
                return None
            return Path(value).expanduser()

        level = env.get("PYHALIDE_LOG_LEVEL") or None
        return Settings(
            runtime_library=_path("HALIDE_RUNTIME_LIBRARY"),
            halide_root=_path("HALIDE_ROOT"),
            log_level=level.upper() if level else None,
        )


def configure_logging(settings: Settings = None, strict: bool = True) -> None:
    """Apply PYHALIDE_LOG_LEVEL to the package logger (no-op if unset).

    With `strict=False` an unknown level is logged as a warning and the
    current level is kept; this is how the package configures itself at import.
    """
    if settings is None:
        settings = Settings.from_env()
    if settings.log_level is None:
        return
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        if not strict:
            logger.warning("Ignoring invalid PYHALIDE_LOG_LEVEL: %s", settings.log_level)
            return
        raise ValueError(f"Invalid PYHALIDE_LOG_LEVEL: {settings.log_level}")
    logging.getLogger("pyhalide").setLevel(level)
