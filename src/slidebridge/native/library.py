"""Locating and loading the OpenSlide shared library.

The library is looked up in this order:
    1. An explicit path passed to load_library()
    2. The OPENSLIDE_LIBRARY_PATH setting
    3. The platform's versioned sonames on the dynamic loader search path
    4. ctypes.util.find_library("openslide")
"""

from __future__ import annotations

import ctypes.util
import platform
from ctypes import CDLL, cdll
from pathlib import Path

from slidebridge.config import settings
from slidebridge.exceptions import NativeLibraryError
from slidebridge.utils.logging import get_logger

logger = get_logger(__name__)

# Candidate sonames per platform, newest ABI first
LIBRARY_NAMES: dict[str, tuple[str, ...]] = {
    "Windows": ("libopenslide-1.dll", "libopenslide-0.dll"),
    "Darwin": ("libopenslide.1.dylib", "libopenslide.0.dylib"),
    "Linux": ("libopenslide.so.1", "libopenslide.so.0"),
}


def _candidate_names(system: str | None = None) -> tuple[str, ...]:
    system = system or platform.system()
    return LIBRARY_NAMES.get(system, LIBRARY_NAMES["Linux"])


def _load_path(path: Path) -> CDLL:
    try:
        return cdll.LoadLibrary(str(path))
    except OSError as e:
        raise NativeLibraryError(f"Failed to load OpenSlide: {e}", path=path) from e


def load_library(path: str | Path | None = None) -> CDLL:
    """Load libopenslide.

    Args:
        path: Explicit library file. Overrides OPENSLIDE_LIBRARY_PATH.

    Returns:
        The loaded ctypes library.

    Raises:
        ConfigError: If OPENSLIDE_LIBRARY_PATH is set to a missing file.
        NativeLibraryError: If the library cannot be found or loaded.
    """
    if path is not None:
        lib = _load_path(Path(path))
        logger.debug("OpenSlide library loaded", source=str(path))
        return lib

    if settings.OPENSLIDE_LIBRARY_PATH:
        configured = settings.require_library_path()
        lib = _load_path(configured)
        logger.debug("OpenSlide library loaded", source=str(configured))
        return lib

    for name in _candidate_names():
        try:
            lib = cdll.LoadLibrary(name)
        except OSError:
            continue
        logger.debug("OpenSlide library loaded", source=name)
        return lib

    # MacPorts and some distributions are only reachable via find_library()
    found = ctypes.util.find_library("openslide")
    if found is not None:
        lib = _load_path(Path(found))
        logger.debug("OpenSlide library loaded", source=found)
        return lib

    raise NativeLibraryError(
        "Couldn't locate the OpenSlide library. Is OpenSlide installed "
        "correctly? Set OPENSLIDE_LIBRARY_PATH to point at it explicitly."
    )
