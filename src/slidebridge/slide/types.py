"""Type definitions for the slide layer.

Contains the owned values handed back to callers and the request model
validated before any native read. All locations follow the OpenSlide
convention where Level-0 is the highest resolution (full magnification).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

import numpy as np
import numpy.typing as npt
from PIL import Image
from pydantic import BaseModel, Field

from slidebridge.native.convert import BYTES_PER_PIXEL, argb_to_rgba, native_byte_order


@dataclass(frozen=True)
class PixelBuffer:
    """Pixels copied out of a native read.

    data holds width * height 32-bit premultiplied ARGB words in native
    byte order, exactly as OpenSlide wrote them. It is a copy: nothing
    here refers to native memory.

    Attributes:
        width: Pixel columns.
        height: Pixel rows.
        data: Raw pixel bytes, length width * height * 4.
    """

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative size ({self.width}, {self.height})")
        expected = self.width * self.height * BYTES_PER_PIXEL
        if len(self.data) != expected:
            raise ValueError(
                f"Pixel data has {len(self.data)} bytes, expected {expected}"
            )

    def __len__(self) -> int:
        return len(self.data)

    @property
    def size(self) -> tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    @property
    def channel_order(self) -> str:
        """Byte order of each pixel in data on this host."""
        return native_byte_order()

    def to_array(self) -> npt.NDArray[np.uint8]:
        """Return straight (non-premultiplied) RGBA as (height, width, 4)."""
        return argb_to_rgba(self.data, self.width, self.height)

    def to_image(self) -> Image.Image:
        """Return the pixels as a PIL image in RGBA mode."""
        return Image.fromarray(self.to_array())


class RegionRequest(BaseModel, frozen=True):
    """A region read request, validated before it reaches native code.

    The location is in Level-0 coordinates; the size is in pixels of the
    target level.

    Attributes:
        x: Left edge in Level-0 pixels (>= 0).
        y: Top edge in Level-0 pixels (>= 0).
        level: Pyramid level index (>= 0).
        width: Columns to read at the target level (> 0).
        height: Rows to read at the target level (> 0).
    """

    x: int = Field(..., ge=0, description="Left edge X coordinate (Level-0)")
    y: int = Field(..., ge=0, description="Top edge Y coordinate (Level-0)")
    level: int = Field(..., ge=0, description="Pyramid level")
    width: int = Field(..., gt=0, description="Width at the target level")
    height: int = Field(..., gt=0, description="Height at the target level")

    @classmethod
    def from_tuples(
        cls,
        location: tuple[int, int],
        level: int,
        size: tuple[int, int],
    ) -> Self:
        """Create a request from the (x, y), level, (w, h) calling convention."""
        return cls(
            x=location[0],
            y=location[1],
            level=level,
            width=size[0],
            height=size[1],
        )

    @property
    def location(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def byte_count(self) -> int:
        """Size of the pixel buffer this request needs."""
        return self.width * self.height * BYTES_PER_PIXEL

    def fits_level(self, level_size: tuple[int, int], downsample: float) -> bool:
        """Check the request against a level's bounds.

        The Level-0 origin is projected onto the level by flooring
        x / downsample. OpenSlide's own placement may round differently,
        so this is an approximation that errs on rejecting edge cases.
        """
        left, top = level0_to_level(self.location, downsample)
        return (
            left + self.width <= level_size[0]
            and top + self.height <= level_size[1]
        )


@dataclass(frozen=True)
class SlideMetadata:
    """Immutable geometry and key metadata of an open slide.

    Attributes:
        path: Absolute path to the slide file.
        width: Width of Level-0 (highest resolution) in pixels.
        height: Height of Level-0 (highest resolution) in pixels.
        level_count: Number of pyramid levels available.
        level_dimensions: Tuple of (width, height) for each level.
        level_downsamples: Tuple of downsample factors for each level.
        vendor: Slide scanner vendor (e.g., "aperio", "hamamatsu"),
            "unknown" if OpenSlide does not report one.
        mpp_x: Microns per pixel in X direction, None if unavailable.
        mpp_y: Microns per pixel in Y direction, None if unavailable.
    """

    path: str
    width: int
    height: int
    level_count: int
    level_dimensions: tuple[tuple[int, int], ...]
    level_downsamples: tuple[float, ...]
    vendor: str
    mpp_x: float | None
    mpp_y: float | None

    @property
    def dimensions(self) -> tuple[int, int]:
        """Return Level-0 dimensions as (width, height)."""
        return (self.width, self.height)


# Coordinate transformation utilities


def level0_to_level(
    coord: tuple[int, int],
    downsample: float,
) -> tuple[int, int]:
    """Transform Level-0 coordinates to another level.

    Args:
        coord: (x, y) coordinates in Level-0 space.
        downsample: Downsample factor of the target level.

    Returns:
        (x, y) coordinates in the target level's space.
    """
    x, y = coord
    return (int(x / downsample), int(y / downsample))

