"""Lifetime management for the opaque `openslide_t *` handle."""

from __future__ import annotations

from ctypes import c_void_p
from pathlib import Path
from typing import TYPE_CHECKING

from slidebridge.exceptions import OpenError, UseAfterCloseError
from slidebridge.native.convert import encode_path
from slidebridge.slide.bridge import check

if TYPE_CHECKING:
    from slidebridge.native.api import NativeAPI


class SlideHandle:
    """Exclusive owner of one native slide handle.

    The native close runs at most once: either through release(), or
    when the handle is garbage collected while still open. Once released,
    borrow() raises and the ctypes argument adapter refuses the handle.
    """

    __slots__ = ("_api", "_as_parameter_", "_closed", "_path")

    def __init__(self, address: int, api: NativeAPI, path: Path | None = None) -> None:
        if not address:
            raise ValueError("Cannot wrap a NULL slide handle")
        self._as_parameter_ = c_void_p(address)
        self._api = api
        self._path = path
        self._closed = False

    @classmethod
    def acquire(cls, api: NativeAPI, path: Path) -> SlideHandle:
        """Open a slide file and return its validated handle.

        Raises:
            OpenError: If the path cannot be encoded, OpenSlide returns NULL,
                or the new handle is already in an error state. In the last
                case the handle is released before raising.
        """
        try:
            encoded = encode_path(path)
        except ValueError as e:
            raise OpenError(f"Invalid slide path: {e}", path=path) from e

        address = api.open(encoded)
        if not address:
            raise OpenError("Unsupported or missing slide file", path=path)

        handle = cls(address, api, path)
        error = check(api, handle, "openslide_open", path)
        if error is not None:
            handle.release()
            raise OpenError(
                f"Failed to open slide: {error.native_message}",
                path=path,
                native_message=error.native_message,
            ) from error
        return handle

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def address(self) -> int:
        """Raw pointer value, for diagnostics only."""
        return self._as_parameter_.value or 0

    def borrow(self, operation: str | None = None) -> SlideHandle:
        """Return self for one native call, or raise if released."""
        if self._closed:
            raise UseAfterCloseError(path=self._path, operation=operation)
        return self

    def release(self) -> bool:
        """Close the native handle.

        Returns:
            True if this call closed the handle, False if it was already closed.
        """
        if self._closed:
            return False
        try:
            self._api.close(self)
        finally:
            self._closed = True
        return True

    def __del__(self) -> None:
        # Attributes may be missing if __init__ raised
        if getattr(self, "_closed", True):
            return
        self.release()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SlideHandle(address={self.address:#x}, {state})"
