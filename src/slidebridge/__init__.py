"""slidebridge: a safe ctypes binding to the OpenSlide C library.

Open whole-slide microscopy images, query their pyramid geometry and
properties, and read pixel regions, with native errors surfaced as
exceptions and the native handle closed exactly once.
"""

from slidebridge.exceptions import (
    InvalidLevelError,
    NativeError,
    NativeLibraryError,
    OpenError,
    RegionOutOfBoundsError,
    SlideError,
    UseAfterCloseError,
    VendorUnknownError,
)
from slidebridge.slide import (
    PixelBuffer,
    PredefinedProperties,
    RegionRequest,
    Slide,
    SlideMetadata,
    detect_vendor,
    library_version,
    open_slide,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidLevelError",
    "NativeError",
    "NativeLibraryError",
    "OpenError",
    "PixelBuffer",
    "PredefinedProperties",
    "RegionOutOfBoundsError",
    "RegionRequest",
    "Slide",
    "SlideError",
    "SlideMetadata",
    "UseAfterCloseError",
    "VendorUnknownError",
    "__version__",
    "detect_vendor",
    "library_version",
    "open_slide",
]
