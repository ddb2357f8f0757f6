"""The OpenSlide C function table.

NativeAPI binds each entry point of libopenslide with its exact C
signature and exposes it as a plain method. Outputs are converted to
owned Python values at this boundary: C strings to str, NULL-terminated
arrays to lists, out-parameters to tuples.

NativeAPI does not check the native error slot. Callers read it right
after each delegate call (see slidebridge.slide.bridge).
"""

from __future__ import annotations

import threading
from ctypes import (
    CDLL,
    POINTER,
    Array,
    byref,
    c_char_p,
    c_double,
    c_int32,
    c_int64,
    c_uint32,
    c_void_p,
)
from typing import Any, Protocol

from slidebridge.exceptions import NativeLibraryError
from slidebridge.native.convert import decode_c_string, read_string_array
from slidebridge.native.library import load_library

MINIMUM_VERSION = "3.4.0"


class HandleLike(Protocol):
    """What the function table accepts as an `openslide_t *` argument."""

    _as_parameter_: c_void_p

    @property
    def closed(self) -> bool: ...


class _HandleParam:
    """ctypes argtype adapter that refuses NULL or closed slide handles."""

    @classmethod
    def from_param(cls, obj: Any) -> Any:
        pointer = getattr(obj, "_as_parameter_", None)
        if not isinstance(pointer, c_void_p):
            raise TypeError("Not a slide handle")
        if not pointer.value:
            raise ValueError("Passing undefined slide handle")
        if getattr(obj, "closed", False):
            raise ValueError("Passing closed slide handle")
        return obj


class _Utf8Param:
    """ctypes argtype adapter converting str arguments to UTF-8 bytes."""

    @classmethod
    def from_param(cls, obj: str | bytes) -> bytes:
        if isinstance(obj, bytes):
            return obj
        if isinstance(obj, str):
            return obj.encode("UTF-8")
        raise TypeError("Incorrect type")


# name -> (restype, argtypes)
FUNCTION_TABLE: dict[str, tuple[Any, list[Any]]] = {
    "openslide_detect_vendor": (c_char_p, [c_char_p]),
    "openslide_open": (c_void_p, [c_char_p]),
    "openslide_close": (None, [_HandleParam]),
    "openslide_get_error": (c_char_p, [_HandleParam]),
    "openslide_get_level_count": (c_int32, [_HandleParam]),
    "openslide_get_level0_dimensions": (
        None,
        [_HandleParam, POINTER(c_int64), POINTER(c_int64)],
    ),
    "openslide_get_level_dimensions": (
        None,
        [_HandleParam, c_int32, POINTER(c_int64), POINTER(c_int64)],
    ),
    "openslide_get_level_downsample": (c_double, [_HandleParam, c_int32]),
    "openslide_get_best_level_for_downsample": (c_int32, [_HandleParam, c_double]),
    "openslide_read_region": (
        None,
        [_HandleParam, POINTER(c_uint32), c_int64, c_int64, c_int32, c_int64, c_int64],
    ),
    "openslide_get_property_names": (POINTER(c_char_p), [_HandleParam]),
    "openslide_get_property_value": (c_char_p, [_HandleParam, _Utf8Param]),
    "openslide_get_associated_image_names": (POINTER(c_char_p), [_HandleParam]),
    "openslide_get_associated_image_dimensions": (
        None,
        [_HandleParam, _Utf8Param, POINTER(c_int64), POINTER(c_int64)],
    ),
    "openslide_read_associated_image": (
        None,
        [_HandleParam, _Utf8Param, POINTER(c_uint32)],
    ),
    "openslide_get_version": (c_char_p, []),
}


class NativeAPI:
    """Typed facade over a loaded libopenslide.

    Args:
        lib: A loaded library exposing the OpenSlide entry points.

    Raises:
        NativeLibraryError: If any entry point is missing, which means the
            library predates OpenSlide 3.4.0.
    """

    def __init__(self, lib: CDLL) -> None:
        self._lib = lib
        self._funcs: dict[str, Any] = {}
        for name, (restype, argtypes) in FUNCTION_TABLE.items():
            try:
                func = getattr(lib, name)
            except AttributeError as e:
                raise NativeLibraryError(
                    f"OpenSlide >= {MINIMUM_VERSION} required: missing symbol {name}"
                ) from e
            func.restype = restype
            func.argtypes = argtypes
            self._funcs[name] = func

    def _call(self, name: str, *args: Any) -> Any:
        return self._funcs[name](*args)

    # Basic usage

    def detect_vendor(self, path: bytes) -> str | None:
        return decode_c_string(self._call("openslide_detect_vendor", path))

    def open(self, path: bytes) -> int | None:
        """Return the raw `openslide_t *` address, or None for NULL."""
        return self._call("openslide_open", path)

    def close(self, handle: HandleLike) -> None:
        self._call("openslide_close", handle)

    def get_level_count(self, handle: HandleLike) -> int:
        return int(self._call("openslide_get_level_count", handle))

    def get_level0_dimensions(self, handle: HandleLike) -> tuple[int, int]:
        w, h = c_int64(-1), c_int64(-1)
        self._call("openslide_get_level0_dimensions", handle, byref(w), byref(h))
        return w.value, h.value

    def get_level_dimensions(self, handle: HandleLike, level: int) -> tuple[int, int]:
        w, h = c_int64(-1), c_int64(-1)
        self._call("openslide_get_level_dimensions", handle, level, byref(w), byref(h))
        return w.value, h.value

    def get_level_downsample(self, handle: HandleLike, level: int) -> float:
        return float(self._call("openslide_get_level_downsample", handle, level))

    def get_best_level_for_downsample(self, handle: HandleLike, factor: float) -> int:
        return int(
            self._call("openslide_get_best_level_for_downsample", handle, factor)
        )

    def read_region(
        self,
        handle: HandleLike,
        buffer: Array[c_uint32],
        x: int,
        y: int,
        level: int,
        w: int,
        h: int,
    ) -> None:
        """Fill a caller-allocated `uint32_t[w * h]` buffer."""
        self._call("openslide_read_region", handle, buffer, x, y, level, w, h)

    # Error handling

    def get_error(self, handle: HandleLike) -> str | None:
        return decode_c_string(self._call("openslide_get_error", handle))

    # Properties

    def get_property_names(self, handle: HandleLike) -> list[str]:
        return read_string_array(self._call("openslide_get_property_names", handle))

    def get_property_value(self, handle: HandleLike, name: str) -> str | None:
        return decode_c_string(
            self._call("openslide_get_property_value", handle, name)
        )

    # Associated images

    def get_associated_image_names(self, handle: HandleLike) -> list[str]:
        return read_string_array(
            self._call("openslide_get_associated_image_names", handle)
        )

    def get_associated_image_dimensions(
        self, handle: HandleLike, name: str
    ) -> tuple[int, int]:
        w, h = c_int64(-1), c_int64(-1)
        self._call(
            "openslide_get_associated_image_dimensions",
            handle,
            name,
            byref(w),
            byref(h),
        )
        return w.value, h.value

    def read_associated_image(
        self, handle: HandleLike, name: str, buffer: Array[c_uint32]
    ) -> None:
        self._call("openslide_read_associated_image", handle, name, buffer)

    # Miscellaneous

    def get_version(self) -> str | None:
        return decode_c_string(self._call("openslide_get_version"))


_default_api: NativeAPI | None = None
_default_lock = threading.Lock()


def get_api() -> NativeAPI:
    """Return the process-wide NativeAPI, loading libopenslide on first use."""
    global _default_api  # noqa: PLW0603
    with _default_lock:
        if _default_api is None:
            _default_api = NativeAPI(load_library())
        return _default_api
