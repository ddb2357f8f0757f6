"""Fixtures for integration tests against libopenslide.

These tests require the OpenSlide shared library and a real slide file.
They are skipped if either is unavailable.

The slide file is provided via the SLIDE_TEST_FILE environment variable.
The CMU-1-Small-Region.svs file is recommended for CI:
    https://openslide.cs.cmu.edu/download/openslide-testdata/Aperio/CMU-1-Small-Region.svs
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from slidebridge.config import ConfigError
from slidebridge.exceptions import NativeLibraryError
from slidebridge.native import NativeAPI, get_api

pytestmark = pytest.mark.integration


def get_test_slide_path() -> Path | None:
    """Get the path to a real slide file, or None if none is configured."""
    env_path = os.environ.get("SLIDE_TEST_FILE")
    if env_path:
        path = Path(env_path)
        if path.is_file():
            return path

    test_data_dir = Path(__file__).parent / "data"
    if test_data_dir.exists():
        for svs_file in sorted(test_data_dir.glob("*.svs")):
            return svs_file

    return None


@pytest.fixture(scope="session")
def native_api() -> NativeAPI:
    """Provide the real function table, skipping if libopenslide is missing."""
    try:
        return get_api()
    except (NativeLibraryError, ConfigError) as e:
        pytest.skip(f"OpenSlide library not available: {e}")


@pytest.fixture(scope="session")
def slide_test_file(native_api: NativeAPI) -> Generator[Path, None, None]:
    """Provide path to a real slide file.

    Skips the test if no test file is available.

    Usage:
        def test_something(slide_test_file: Path) -> None:
            with Slide(slide_test_file) as slide:
                ...
    """
    path = get_test_slide_path()
    if path is None:
        pytest.skip(
            "No slide test file available. "
            "Set SLIDE_TEST_FILE environment variable. "
            "Example: curl -LO https://openslide.cs.cmu.edu/download/"
            "openslide-testdata/Aperio/CMU-1-Small-Region.svs"
        )
    yield path
