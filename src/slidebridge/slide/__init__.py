"""Slide layer for slidebridge.

This package turns the raw OpenSlide function table into a safe object
interface: one Slide per open file, guarded accessors that validate
before calling native code, and an error bridge that converts the native
error slot into exceptions.

Key Components:
    - Slide: Opens a slide file and exposes guarded accessors
    - SlideHandle: Owns the native handle and closes it exactly once
    - bridge: Reads the native error slot after each native call
    - PixelBuffer: Owned pixel data returned by region reads
    - PredefinedProperties: Typed view of the vendor-agnostic properties

Example:
    from slidebridge.slide import Slide

    with Slide("slide.svs") as slide:
        print(slide.dimensions(), slide.level_count())
        pixels = slide.read_region((1000, 2000), level=0, size=(512, 512))
        pixels.to_image().save("region.png")
"""

from slidebridge.slide.handle import SlideHandle
from slidebridge.slide.properties import LevelProperties, PredefinedProperties
from slidebridge.slide.slide import Slide, detect_vendor, library_version, open_slide
from slidebridge.slide.types import PixelBuffer, RegionRequest, SlideMetadata

__all__ = [
    "LevelProperties",
    "PixelBuffer",
    "PredefinedProperties",
    "RegionRequest",
    "Slide",
    "SlideHandle",
    "SlideMetadata",
    "detect_vendor",
    "library_version",
    "open_slide",
]
