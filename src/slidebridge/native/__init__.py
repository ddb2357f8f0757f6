"""Native boundary: loading libopenslide and its C function table.

Most users should use slidebridge.Slide rather than this package. The
NativeAPI here performs no error checking of its own.
"""

from slidebridge.native.api import FUNCTION_TABLE, NativeAPI, get_api
from slidebridge.native.library import load_library

__all__ = [
    "FUNCTION_TABLE",
    "NativeAPI",
    "get_api",
    "load_library",
]
