"""Shared pytest fixtures and configuration.

Unit tests never load libopenslide. FakeNativeAPI stands in for the
function table and mimics OpenSlide's observable behavior: sentinel
return values, a sticky per-handle error slot, and buffers filled in
place.
"""

from collections.abc import Callable, Iterator
from ctypes import Array, c_uint32
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import pytest

from slidebridge.config import Settings
from slidebridge.slide import Slide
from slidebridge.utils.logging import configure_logging

# Opaque premultiplied ARGB: a=255, r=0x10, g=0x20, b=0x30
OPAQUE_PIXEL = 0xFF102030


@dataclass
class FakeSlideSpec:
    """What a fake slide looks like to the binding."""

    levels: list[tuple[tuple[int, int], float]] = field(
        default_factory=lambda: [
            ((2048, 1024), 1.0),
            ((512, 256), 4.0),
            ((128, 64), 16.0),
        ]
    )
    properties: dict[str, str | None] = field(
        default_factory=lambda: {
            "openslide.vendor": "generic-tiff",
            "openslide.mpp-x": "0.25",
            "openslide.mpp-y": "0.5",
            "openslide.background-color": "FFFFFF",
            "openslide.level-count": "3",
            "openslide.level[0].downsample": "1",
            "openslide.level[0].width": "2048",
            "openslide.level[0].height": "1024",
            "openslide.level[1].downsample": "4",
            "openslide.level[1].width": "512",
            "openslide.level[1].height": "256",
            "openslide.level[2].downsample": "16",
            "openslide.level[2].width": "128",
            "openslide.level[2].height": "64",
            "tiff.ImageDescription": "test slide",
        }
    )
    associated: dict[str, tuple[int, int]] = field(
        default_factory=lambda: {"label": (8, 4), "thumbnail": (16, 8)}
    )
    vendor: str | None = "generic-tiff"
    # Native open returns NULL
    unsupported: bool = False
    # Native open returns a handle already in an error state
    open_error: str | None = None
    # Method name -> error text set in the slot when that method runs
    fail: dict[str, str] = field(default_factory=dict)
    best_level: int | None = None
    pixel: int = OPAQUE_PIXEL


class FakeNativeAPI:
    """In-memory stand-in for slidebridge.native.NativeAPI."""

    def __init__(self, spec: FakeSlideSpec | None = None) -> None:
        self.spec = spec or FakeSlideSpec()
        self.calls: list[str] = []
        self.closed: list[int] = []
        self._errors: dict[int, str | None] = {}
        self._next_address = 0x1000

    # Helpers

    def _enter(self, name: str, handle: Any) -> int:
        self.calls.append(name)
        assert not handle.closed, f"{name} reached native code with a closed handle"
        return handle.address

    def _failed(self, name: str, address: int) -> bool:
        if name in self.spec.fail and self._errors.get(address) is None:
            self._errors[address] = self.spec.fail[name]
        return self._errors.get(address) is not None

    def native_calls(self, name: str) -> int:
        return self.calls.count(name)

    # Function table

    def detect_vendor(self, path: bytes) -> str | None:
        self.calls.append("detect_vendor")
        return self.spec.vendor

    def open(self, path: bytes) -> int | None:
        self.calls.append("open")
        if self.spec.unsupported:
            return None
        address = self._next_address
        self._next_address += 0x100
        self._errors[address] = self.spec.open_error
        return address

    def close(self, handle: Any) -> None:
        address = self._enter("close", handle)
        self.closed.append(address)

    def get_error(self, handle: Any) -> str | None:
        return self._errors.get(self._enter("get_error", handle))

    def get_level_count(self, handle: Any) -> int:
        address = self._enter("get_level_count", handle)
        if self._failed("get_level_count", address):
            return -1
        return len(self.spec.levels)

    def get_level0_dimensions(self, handle: Any) -> tuple[int, int]:
        address = self._enter("get_level0_dimensions", handle)
        if self._failed("get_level0_dimensions", address):
            return (-1, -1)
        return self.spec.levels[0][0]

    def get_level_dimensions(self, handle: Any, level: int) -> tuple[int, int]:
        address = self._enter("get_level_dimensions", handle)
        if self._failed("get_level_dimensions", address):
            return (-1, -1)
        if not 0 <= level < len(self.spec.levels):
            return (-1, -1)
        return self.spec.levels[level][0]

    def get_level_downsample(self, handle: Any, level: int) -> float:
        address = self._enter("get_level_downsample", handle)
        if self._failed("get_level_downsample", address):
            return -1.0
        if not 0 <= level < len(self.spec.levels):
            return -1.0
        return self.spec.levels[level][1]

    def get_best_level_for_downsample(self, handle: Any, factor: float) -> int:
        address = self._enter("get_best_level_for_downsample", handle)
        if self._failed("get_best_level_for_downsample", address):
            return -1
        if self.spec.best_level is not None:
            return self.spec.best_level
        downsamples = [ds for _, ds in self.spec.levels]
        for i in range(1, len(downsamples)):
            if factor < downsamples[i]:
                return i - 1
        return len(downsamples) - 1

    def read_region(
        self,
        handle: Any,
        buffer: Array[c_uint32],
        x: int,
        y: int,
        level: int,
        w: int,
        h: int,
    ) -> None:
        address = self._enter("read_region", handle)
        assert len(buffer) == w * h
        if self._failed("read_region", address):
            buffer[:] = [0] * len(buffer)
            return
        buffer[:] = [self.spec.pixel] * len(buffer)

    def get_property_names(self, handle: Any) -> list[str]:
        address = self._enter("get_property_names", handle)
        if self._failed("get_property_names", address):
            return []
        return list(self.spec.properties)

    def get_property_value(self, handle: Any, name: str) -> str | None:
        address = self._enter("get_property_value", handle)
        if self._failed("get_property_value", address):
            return None
        return self.spec.properties.get(name)

    def get_associated_image_names(self, handle: Any) -> list[str]:
        address = self._enter("get_associated_image_names", handle)
        if self._failed("get_associated_image_names", address):
            return []
        return list(self.spec.associated)

    def get_associated_image_dimensions(
        self, handle: Any, name: str
    ) -> tuple[int, int]:
        address = self._enter("get_associated_image_dimensions", handle)
        if self._failed("get_associated_image_dimensions", address):
            return (-1, -1)
        return self.spec.associated.get(name, (-1, -1))

    def read_associated_image(
        self, handle: Any, name: str, buffer: Array[c_uint32]
    ) -> None:
        address = self._enter("read_associated_image", handle)
        if self._failed("read_associated_image", address):
            buffer[:] = [0] * len(buffer)
            return
        buffer[:] = [self.spec.pixel] * len(buffer)

    def get_version(self) -> str | None:
        self.calls.append("get_version")
        return "4.0.0"


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        OPENSLIDE_LIBRARY_PATH=None,
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def fake_api() -> FakeNativeAPI:
    """A fake function table describing a 2048x1024, 3-level slide."""
    return FakeNativeAPI()


@pytest.fixture
def make_fake_api() -> Callable[..., FakeNativeAPI]:
    """Build a fake function table with some FakeSlideSpec fields overridden."""

    def _make(**overrides: Any) -> FakeNativeAPI:
        return FakeNativeAPI(replace(FakeSlideSpec(), **overrides))

    return _make


@pytest.fixture
def slide_file(tmp_path: Path) -> Path:
    """An on-disk file for Slide to open. Its contents are never read."""
    path = tmp_path / "slide.svs"
    path.write_bytes(b"not really a slide")
    return path


@pytest.fixture
def slide(fake_api: FakeNativeAPI, slide_file: Path) -> Iterator[Slide]:
    """An open Slide backed by fake_api."""
    opened = Slide(slide_file, api=fake_api)  # type: ignore[arg-type]
    yield opened
    opened.close()
