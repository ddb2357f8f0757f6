"""Conversions between native OpenSlide outputs and owned Python values.

Everything that leaves the FFI boundary passes through here: C strings
become str, NULL-terminated string arrays become lists, and
caller-allocated pixel buffers become immutable bytes.
"""

from __future__ import annotations

import os
import sys
from ctypes import Array, c_char_p, c_uint32, sizeof, string_at
from itertools import count
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from ctypes import _Pointer

BYTES_PER_PIXEL = 4


def encode_path(path: str | os.PathLike[str]) -> bytes:
    """Encode a filesystem path for a `const char *` parameter.

    Raises:
        ValueError: If the path contains an embedded NUL byte.
    """
    encoded = os.fsencode(path)
    if b"\0" in encoded:
        raise ValueError("Path contains an embedded NUL byte")
    return encoded


def decode_c_string(raw: bytes | None) -> str | None:
    """Decode a returned C string, keeping NULL as None."""
    if raw is None:
        return None
    return raw.decode("UTF-8", "replace")


def read_string_array(array: _Pointer[c_char_p] | None) -> list[str]:
    """Copy a NULL-terminated `const char * const *` into a list of str.

    A NULL array pointer is treated as an empty list.
    """
    if not array:
        return []
    names = []
    for i in count():
        name = array[i]
        if not name:
            break
        names.append(name.decode("UTF-8", "replace"))
    return names


def allocate_pixels(width: int, height: int) -> Array[c_uint32]:
    """Allocate a zeroed `uint32_t[width * height]` buffer for a native read."""
    return (c_uint32 * (width * height))()


def copy_pixels(buffer: Array[c_uint32]) -> bytes:
    """Copy a native pixel buffer into owned bytes."""
    return string_at(buffer, sizeof(buffer))


def argb_to_rgba(data: bytes, width: int, height: int) -> npt.NDArray[np.uint8]:
    """Convert premultiplied native-endian ARGB words to straight RGBA.

    Args:
        data: width * height 32-bit words as produced by openslide_read_region.
        width: Pixel columns.
        height: Pixel rows.

    Returns:
        uint8 array of shape (height, width, 4) in RGBA order with alpha
        un-premultiplied. Fully transparent pixels stay (0, 0, 0, 0).
    """
    expected = width * height * BYTES_PER_PIXEL
    if len(data) != expected:
        raise ValueError(f"Expected {expected} bytes, got {len(data)}")

    words = np.frombuffer(data, dtype=np.dtype("=u4")).reshape(height, width)
    alpha = (words >> 24) & 0xFF
    channels = np.stack(
        [(words >> 16) & 0xFF, (words >> 8) & 0xFF, words & 0xFF], axis=-1
    ).astype(np.float64)

    partial = (alpha > 0) & (alpha < 255)
    if partial.any():
        scale = np.where(partial, 255.0 / np.maximum(alpha, 1), 1.0)
        channels = np.clip(np.rint(channels * scale[..., None]), 0, 255)

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., :3] = channels.astype(np.uint8)
    rgba[..., 3] = alpha.astype(np.uint8)
    return rgba


def native_byte_order() -> str:
    """Return the channel order of PixelBuffer.data on this host."""
    return "BGRA" if sys.byteorder == "little" else "ARGB"
