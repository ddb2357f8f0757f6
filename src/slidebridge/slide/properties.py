"""Vendor-agnostic OpenSlide property names and a typed view over them.

The raw property dictionary is open-ended; each vendor adds its own
keys. Only the `openslide.*` names below are stable across vendors, and
PredefinedProperties is a parsed snapshot of just those.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

PROPERTY_NAME_COMMENT = "openslide.comment"
PROPERTY_NAME_VENDOR = "openslide.vendor"
PROPERTY_NAME_QUICKHASH1 = "openslide.quickhash-1"
PROPERTY_NAME_BACKGROUND_COLOR = "openslide.background-color"
PROPERTY_NAME_OBJECTIVE_POWER = "openslide.objective-power"
PROPERTY_NAME_MPP_X = "openslide.mpp-x"
PROPERTY_NAME_MPP_Y = "openslide.mpp-y"
PROPERTY_NAME_BOUNDS_X = "openslide.bounds-x"
PROPERTY_NAME_BOUNDS_Y = "openslide.bounds-y"
PROPERTY_NAME_BOUNDS_WIDTH = "openslide.bounds-width"
PROPERTY_NAME_BOUNDS_HEIGHT = "openslide.bounds-height"
PROPERTY_NAME_LEVEL_COUNT = "openslide.level-count"

# openslide.level[<n>].<field>
_LEVEL_KEY = re.compile(r"^openslide\.level\[(\d+)\]\.([a-z-]+)$")


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class LevelProperties:
    """Per-level values reported under `openslide.level[<n>].*`."""

    downsample: float | None = None
    width: int | None = None
    height: int | None = None
    tile_width: int | None = None
    tile_height: int | None = None


_LEVEL_FIELDS = {
    "downsample": ("downsample", _parse_float),
    "width": ("width", _parse_int),
    "height": ("height", _parse_int),
    "tile-width": ("tile_width", _parse_int),
    "tile-height": ("tile_height", _parse_int),
}


@dataclass(frozen=True)
class PredefinedProperties:
    """Typed snapshot of the vendor-agnostic `openslide.*` properties.

    Every field is None when the slide does not report it or the value
    cannot be parsed.
    """

    comment: str | None
    vendor: str | None
    quickhash_1: str | None
    background_color: str | None
    objective_power: float | None
    mpp_x: float | None
    mpp_y: float | None
    bounds: tuple[int, int, int, int] | None
    level_count: int | None
    levels: tuple[LevelProperties, ...]

    @classmethod
    def from_mapping(cls, properties: Mapping[str, str]) -> PredefinedProperties:
        """Parse the predefined keys out of a raw property dictionary.

        If `openslide.level-count` disagrees with the highest
        `openslide.level[<n>]` index present, the indexed keys win.
        """
        levels = _parse_levels(properties)
        level_count = _parse_int(properties.get(PROPERTY_NAME_LEVEL_COUNT))
        if levels and level_count != len(levels):
            level_count = len(levels)

        bounds_values = [
            _parse_int(properties.get(key))
            for key in (
                PROPERTY_NAME_BOUNDS_X,
                PROPERTY_NAME_BOUNDS_Y,
                PROPERTY_NAME_BOUNDS_WIDTH,
                PROPERTY_NAME_BOUNDS_HEIGHT,
            )
        ]
        bounds = None
        if all(v is not None for v in bounds_values):
            x, y, w, h = bounds_values
            bounds = (x, y, w, h)  # type: ignore[assignment]

        return cls(
            comment=properties.get(PROPERTY_NAME_COMMENT),
            vendor=properties.get(PROPERTY_NAME_VENDOR),
            quickhash_1=properties.get(PROPERTY_NAME_QUICKHASH1),
            background_color=properties.get(PROPERTY_NAME_BACKGROUND_COLOR),
            objective_power=_parse_float(properties.get(PROPERTY_NAME_OBJECTIVE_POWER)),
            mpp_x=_parse_float(properties.get(PROPERTY_NAME_MPP_X)),
            mpp_y=_parse_float(properties.get(PROPERTY_NAME_MPP_Y)),
            bounds=bounds,
            level_count=level_count,
            levels=levels,
        )


def _parse_levels(properties: Mapping[str, str]) -> tuple[LevelProperties, ...]:
    fields: dict[int, dict[str, float | int | None]] = {}
    for key, value in properties.items():
        match = _LEVEL_KEY.match(key)
        if match is None:
            continue
        index, name = int(match.group(1)), match.group(2)
        if name not in _LEVEL_FIELDS:
            continue
        attr, parse = _LEVEL_FIELDS[name]
        fields.setdefault(index, {})[attr] = parse(value)

    if not fields:
        return ()
    count = max(fields) + 1
    return tuple(
        LevelProperties(**fields.get(i, {}))  # type: ignore[arg-type]
        for i in range(count)
    )
