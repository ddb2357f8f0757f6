"""Slide: the safe, public face of an OpenSlide handle.

Every accessor follows the same three steps:
    1. validate arguments (and that the slide is still open)
    2. delegate to the native function table
    3. check the native error slot, then convert the result to owned values

The coordinate system follows OpenSlide conventions:
    - Level 0 is the highest resolution (full magnification)
    - All location parameters are in Level-0 pixel coordinates
    - Size parameters are in the target level's pixel coordinates
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from PIL import Image
from pydantic import ValidationError

from slidebridge.exceptions import (
    InvalidLevelError,
    NativeError,
    NativeLibraryError,
    OpenError,
    RegionOutOfBoundsError,
    VendorUnknownError,
)
from slidebridge.native.api import NativeAPI, get_api
from slidebridge.native.convert import allocate_pixels, copy_pixels, encode_path
from slidebridge.slide.bridge import raise_for_error
from slidebridge.slide.handle import SlideHandle
from slidebridge.slide.properties import (
    PROPERTY_NAME_BACKGROUND_COLOR,
    PROPERTY_NAME_MPP_X,
    PROPERTY_NAME_MPP_Y,
    PROPERTY_NAME_VENDOR,
    PredefinedProperties,
)
from slidebridge.slide.types import PixelBuffer, RegionRequest, SlideMetadata
from slidebridge.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger(__name__)

_HEX_COLOR = re.compile(r"[0-9A-Fa-f]{6}")


class Slide:
    """An open whole-slide image.

    Usage:
        with Slide("/path/to/slide.svs") as slide:
            width, height = slide.dimensions()
            pixels = slide.read_region((1000, 2000), level=0, size=(512, 512))
            image = pixels.to_image()

    A Slide owns its native handle exclusively. close() releases it; any
    later operation raises UseAfterCloseError instead of reaching native
    code. Calls on one Slide must not run concurrently; separate Slides
    are independent.

    Attributes:
        path: Absolute path to the opened slide file.
    """

    __slots__ = ("_api", "_handle", "_log", "_metadata", "_path")

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        api: NativeAPI | None = None,
    ) -> None:
        """Open a slide file.

        Args:
            path: Path to the slide file.
            api: Function table to use. Defaults to the process-wide one.

        Raises:
            OpenError: If the file doesn't exist, is not a regular file, or
                cannot be opened by OpenSlide.
            NativeLibraryError: If libopenslide cannot be loaded.
        """
        self._metadata: SlideMetadata | None = None
        try:
            self._path = Path(path).resolve()
            exists = self._path.exists()
            is_file = self._path.is_file()
        except (OSError, ValueError) as e:
            raise OpenError(f"Invalid slide path: {e}", path=os.fspath(path)) from e

        if not exists:
            raise OpenError("File not found", path=self._path)
        if not is_file:
            raise OpenError("Not a regular file", path=self._path)

        self._api = api if api is not None else get_api()
        self._handle = SlideHandle.acquire(self._api, self._path)
        self._log = logger.bind(slide=str(self._path))
        self._log.debug("Slide opened", handle=hex(self._handle.address))

    @property
    def path(self) -> Path:
        """Return the path to the slide file."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def _borrow(self, operation: str) -> SlideHandle:
        return self._handle.borrow(operation)

    def _check(self, handle: SlideHandle, operation: str) -> None:
        raise_for_error(self._api, handle, operation, self._path)

    def _sentinel(self, operation: str, what: str, value: object) -> NativeError:
        return NativeError(
            f"{what} is {value}, which OpenSlide returns on failure",
            self._path,
            operation=operation,
        )

    # Geometry

    def dimensions(self) -> tuple[int, int]:
        """Return Level-0 (width, height) in pixels."""
        handle = self._borrow("dimensions")
        width, height = self._api.get_level0_dimensions(handle)
        self._check(handle, "openslide_get_level0_dimensions")
        if width < 0 or height < 0:
            raise self._sentinel(
                "openslide_get_level0_dimensions", "Dimensions", (width, height)
            )
        return (width, height)

    def level_count(self) -> int:
        """Return the number of pyramid levels."""
        handle = self._borrow("level_count")
        count = self._api.get_level_count(handle)
        self._check(handle, "openslide_get_level_count")
        if count < 0:
            raise self._sentinel("openslide_get_level_count", "Level count", count)
        return count

    def _validate_level(self, level: int) -> None:
        count = self.level_count()
        if level < 0 or level >= count:
            raise InvalidLevelError(level, count, self._path)

    def level_dimensions(self, level: int) -> tuple[int, int]:
        """Return (width, height) of a pyramid level.

        Raises:
            InvalidLevelError: If level is outside [0, level_count()).
        """
        self._borrow("level_dimensions")
        self._validate_level(level)
        handle = self._borrow("level_dimensions")
        width, height = self._api.get_level_dimensions(handle, level)
        self._check(handle, "openslide_get_level_dimensions")
        if width < 0 or height < 0:
            raise self._sentinel(
                "openslide_get_level_dimensions", "Dimensions", (width, height)
            )
        return (width, height)

    def level_downsample(self, level: int) -> float:
        """Return the downsample factor of a pyramid level (1.0 for Level-0).

        Raises:
            InvalidLevelError: If level is outside [0, level_count()).
        """
        self._borrow("level_downsample")
        self._validate_level(level)
        handle = self._borrow("level_downsample")
        factor = self._api.get_level_downsample(handle, level)
        self._check(handle, "openslide_get_level_downsample")
        if factor < 0:
            raise self._sentinel("openslide_get_level_downsample", "Downsample", factor)
        return factor

    def best_level_for_downsample(self, downsample: float) -> int:
        """Return the level OpenSlide suggests for a downsample factor.

        The result is passed through from OpenSlide unmodified. OpenSlide
        can be inconsistent near level boundaries: on a pyramid with
        factors (1, 4, 16), asking for 16.0 may return level 1 while 16.1
        returns level 2. Do not assume the returned level's own factor
        equals the requested one; use level_downsample() to find out.
        """
        handle = self._borrow("best_level_for_downsample")
        level = self._api.get_best_level_for_downsample(handle, float(downsample))
        self._check(handle, "openslide_get_best_level_for_downsample")
        if level < 0:
            raise self._sentinel(
                "openslide_get_best_level_for_downsample", "Best level", level
            )
        return level

    # Pixels

    def read_region(
        self,
        location: tuple[int, int],
        level: int,
        size: tuple[int, int],
    ) -> PixelBuffer:
        """Read a region of the slide.

        Args:
            location: (x, y) tuple of top-left corner in LEVEL-0 coordinates.
            level: Pyramid level to read from (0 = highest resolution).
            size: (width, height) of the region to read AT THE SPECIFIED LEVEL.

        Returns:
            PixelBuffer of exactly width * height * 4 bytes.

        Raises:
            InvalidLevelError: If level is outside [0, level_count()).
            RegionOutOfBoundsError: If the size is not positive, the location
                is negative, or the region extends past the level's bounds.
                Raised before any native read.
            NativeError: If OpenSlide fails while decoding.

        Example:
            # Read a 512x512 region at level 2, starting at (1000, 2000) in L0 coords
            pixels = slide.read_region((1000, 2000), level=2, size=(512, 512))
        """
        self._borrow("read_region")
        self._validate_level(level)

        try:
            request = RegionRequest.from_tuples(location, level, size)
        except ValidationError as e:
            raise RegionOutOfBoundsError(
                "Invalid region: location must be non-negative and size positive",
                path=self._path,
                level=level,
                location=location,
                size=size,
            ) from e

        bounds = self.level_dimensions(level)
        downsample = self.level_downsample(level)
        if not request.fits_level(bounds, downsample):
            raise RegionOutOfBoundsError(
                "Region exceeds level bounds",
                path=self._path,
                level=level,
                location=location,
                size=size,
                bounds=bounds,
            )

        buffer = allocate_pixels(request.width, request.height)
        handle = self._borrow("read_region")
        self._api.read_region(
            handle, buffer, request.x, request.y, level, request.width, request.height
        )
        self._check(handle, "openslide_read_region")
        return PixelBuffer(request.width, request.height, copy_pixels(buffer))

    def get_thumbnail(self, max_size: tuple[int, int]) -> Image.Image:
        """Get an RGB thumbnail of the entire slide.

        The thumbnail maintains the slide's aspect ratio and fits within
        max_size. Transparent areas are filled with the slide's background
        color.

        Raises:
            RegionOutOfBoundsError: If max_size is not positive.
        """
        self._borrow("get_thumbnail")
        if max_size[0] <= 0 or max_size[1] <= 0:
            raise RegionOutOfBoundsError(
                f"Invalid max_size {max_size}. Dimensions must be positive.",
                path=self._path,
                size=max_size,
            )

        width, height = self.dimensions()
        downsample = max(width / max_size[0], height / max_size[1])
        level = self.best_level_for_downsample(downsample)
        tile = self.read_region((0, 0), level, self.level_dimensions(level)).to_image()

        background = self.properties().get(PROPERTY_NAME_BACKGROUND_COLOR, "ffffff")
        if not _HEX_COLOR.fullmatch(background):
            background = "ffffff"
        thumb = Image.new("RGB", tile.size, f"#{background}")
        thumb.paste(tile, None, tile)
        thumb.thumbnail(max_size, Image.Resampling.LANCZOS)
        return thumb

    # Properties

    def properties(self) -> Mapping[str, str]:
        """Return a read-only snapshot of all slide properties.

        Keys include the vendor-agnostic `openslide.*` names plus whatever
        the vendor format reports.
        """
        handle = self._borrow("properties")
        result: dict[str, str] = {}
        missing: list[str] = []
        for name in self._api.get_property_names(handle):
            value = self._api.get_property_value(handle, name)
            if value is None:
                missing.append(name)
            else:
                result[name] = value
        self._check(handle, "openslide_get_property_value")
        if missing:
            raise NativeError(
                f"No value for enumerated properties {missing}",
                self._path,
                operation="openslide_get_property_value",
            )
        return MappingProxyType(result)

    def predefined_properties(self) -> PredefinedProperties:
        """Return the vendor-agnostic properties, parsed into typed fields."""
        return PredefinedProperties.from_mapping(self.properties())

    # Associated images

    def associated_image_names(self) -> list[str]:
        """Return names of the associated images (label, macro, thumbnail, ...)."""
        handle = self._borrow("associated_image_names")
        names = self._api.get_associated_image_names(handle)
        self._check(handle, "openslide_get_associated_image_names")
        return names

    def read_associated_image(self, name: str) -> PixelBuffer:
        """Read one associated image in full.

        Raises:
            NativeError: If OpenSlide does not know the name or fails to decode.
        """
        handle = self._borrow("read_associated_image")
        width, height = self._api.get_associated_image_dimensions(handle, name)
        self._check(handle, "openslide_get_associated_image_dimensions")
        if width <= 0 or height <= 0:
            raise self._sentinel(
                "openslide_get_associated_image_dimensions",
                f"Size of associated image {name!r}",
                (width, height),
            )

        buffer = allocate_pixels(width, height)
        handle = self._borrow("read_associated_image")
        self._api.read_associated_image(handle, name, buffer)
        self._check(handle, "openslide_read_associated_image")
        return PixelBuffer(width, height, copy_pixels(buffer))

    def associated_images(self) -> Mapping[str, PixelBuffer]:
        """Return every associated image, decoded.

        Any failing image fails the whole call; no partial results.
        """
        images = {
            name: self.read_associated_image(name)
            for name in self.associated_image_names()
        }
        return MappingProxyType(images)

    # Summary

    def get_metadata(self) -> SlideMetadata:
        """Get geometry and key metadata for the slide.

        Returns:
            SlideMetadata instance.

        Note:
            Metadata is cached after the first call, but is still refused
            once the slide is closed.
        """
        self._borrow("get_metadata")
        if self._metadata is not None:
            return self._metadata

        width, height = self.dimensions()
        count = self.level_count()
        props = self.properties()

        self._metadata = SlideMetadata(
            path=str(self._path),
            width=width,
            height=height,
            level_count=count,
            level_dimensions=tuple(self.level_dimensions(i) for i in range(count)),
            level_downsamples=tuple(self.level_downsample(i) for i in range(count)),
            vendor=props.get(PROPERTY_NAME_VENDOR, "unknown"),
            mpp_x=self._extract_mpp(props, PROPERTY_NAME_MPP_X),
            mpp_y=self._extract_mpp(props, PROPERTY_NAME_MPP_Y),
        )
        return self._metadata

    @staticmethod
    def _extract_mpp(props: Mapping[str, str], key: str) -> float | None:
        value = props.get(key)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    # Lifecycle

    def close(self) -> None:
        """Close the slide and release its native handle.

        Calling close() again is a no-op; the native close runs once.
        """
        if self._handle.release():
            self._log.debug("Slide closed")

    def __enter__(self) -> Slide:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close the slide."""
        self.close()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"Slide(path={self._path!r})"

    @staticmethod
    def detect_vendor(
        path: str | os.PathLike[str], *, api: NativeAPI | None = None
    ) -> str:
        """Identify the vendor of a slide file without opening it.

        Raises:
            VendorUnknownError: If OpenSlide does not recognize the file.
        """
        api = api if api is not None else get_api()
        try:
            encoded = encode_path(path)
        except ValueError as e:
            raise VendorUnknownError(f"Invalid slide path: {e}") from e

        vendor = api.detect_vendor(encoded)
        if vendor is None:
            raise VendorUnknownError("Unrecognized slide format", path=os.fspath(path))
        return vendor


def open_slide(path: str | os.PathLike[str], *, api: NativeAPI | None = None) -> Slide:
    """Open a slide file. Equivalent to Slide(path)."""
    return Slide(path, api=api)


def detect_vendor(path: str | os.PathLike[str], *, api: NativeAPI | None = None) -> str:
    """Identify the vendor of a slide file without opening it."""
    return Slide.detect_vendor(path, api=api)


def library_version(*, api: NativeAPI | None = None) -> str:
    """Return the version string of the loaded libopenslide."""
    api = api if api is not None else get_api()
    version = api.get_version()
    if version is None:
        raise NativeLibraryError("OpenSlide did not report a version")
    return version
