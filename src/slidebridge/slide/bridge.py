"""Error bridge between the OpenSlide error slot and Python exceptions.

OpenSlide reports failures by setting a per-handle error string instead
of returning error codes. After an error the handle may be inconsistent,
so the slot must be read right after each native call, never before and
never once for a batch of calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from slidebridge.exceptions import NativeError

if TYPE_CHECKING:
    from slidebridge.native.api import HandleLike, NativeAPI


def check(
    api: NativeAPI,
    handle: HandleLike,
    operation: str,
    path: Path | str | None = None,
) -> NativeError | None:
    """Read the error slot of a handle.

    Args:
        api: Function table the handle belongs to.
        handle: Live slide handle.
        operation: Native function that was just called.
        path: Slide path for error context.

    Returns:
        A NativeError carrying the native text, or None if the slot is empty.
    """
    message = api.get_error(handle)
    if message is None:
        return None
    return NativeError(message, path, operation=operation)


def raise_for_error(
    api: NativeAPI,
    handle: HandleLike,
    operation: str,
    path: Path | str | None = None,
) -> None:
    """Raise the NativeError found by check(), if any."""
    error = check(api, handle, operation, path)
    if error is not None:
        raise error
