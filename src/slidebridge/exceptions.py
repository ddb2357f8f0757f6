"""Custom exceptions for slide operations.

Every failure of the binding surfaces as one of these exceptions, each
carrying the slide path and the operation context that produced it.
Native error text is attached verbatim and never interpreted.
"""

from pathlib import Path


class SlideError(Exception):
    """Base exception for all slide-related errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize slide error with optional path context.

        Args:
            message: Human-readable error description.
            path: Path to the slide file that caused the error.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with path context if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class NativeLibraryError(SlideError):
    """Raised when libopenslide cannot be located, loaded, or is too old."""


class OpenError(SlideError):
    """Raised when a slide file cannot be opened.

    This error is raised when:
    - The path does not exist, is not a regular file, or cannot be encoded
    - OpenSlide does not recognize the format (NULL handle)
    - OpenSlide returns a handle that is already in an error state

    The native layer does not distinguish these cases, so they share one
    kind. Native diagnostic text, when there is any, is in native_message.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        *,
        native_message: str | None = None,
    ) -> None:
        self.native_message = native_message
        super().__init__(message, path)


class UseAfterCloseError(SlideError):
    """Raised when an operation is attempted on a closed slide."""

    def __init__(
        self,
        message: str = "Slide is closed",
        path: Path | str | None = None,
        *,
        operation: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, path)

    def _format_message(self) -> str:
        message = super()._format_message()
        if self.operation:
            return f"{message} [operation: {self.operation}]"
        return message


class InvalidLevelError(SlideError):
    """Raised when a pyramid level index is outside [0, level_count)."""

    def __init__(
        self,
        level: int,
        level_count: int,
        path: Path | str | None = None,
    ) -> None:
        self.level = level
        self.level_count = level_count
        super().__init__(
            f"Invalid level {level}. Must be in range [0, {level_count - 1}]",
            path,
        )


class RegionOutOfBoundsError(SlideError):
    """Raised when a requested region is empty or exceeds its level's bounds.

    This error is raised before any native read happens, because
    OpenSlide does not reliably guard against out-of-range requests.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        *,
        level: int | None = None,
        location: tuple[int, int] | None = None,
        size: tuple[int, int] | None = None,
        bounds: tuple[int, int] | None = None,
    ) -> None:
        """Initialize bounds error with request context.

        Args:
            message: Human-readable error description.
            path: Path to the slide file.
            level: Pyramid level being accessed.
            location: (x, y) Level-0 coordinates of the request.
            size: (width, height) of the request at the target level.
            bounds: (width, height) of the target level.
        """
        self.level = level
        self.location = location
        self.size = size
        self.bounds = bounds
        super().__init__(message, path)

    def _format_message(self) -> str:
        """Format error message with full request context."""
        parts = [self.message]
        if self.path:
            parts.append(f"path={self.path}")
        if self.level is not None:
            parts.append(f"level={self.level}")
        if self.location is not None:
            parts.append(f"location={self.location}")
        if self.size is not None:
            parts.append(f"size={self.size}")
        if self.bounds is not None:
            parts.append(f"bounds={self.bounds}")

        if len(parts) == 1:
            return parts[0]
        return f"{parts[0]} ({', '.join(parts[1:])})"


class NativeError(SlideError):
    """Raised when OpenSlide reports an error after a native call.

    The message is vendor-defined and unstable; it is carried as-is in
    native_message. operation names the native function that was called.
    """

    def __init__(
        self,
        native_message: str,
        path: Path | str | None = None,
        *,
        operation: str | None = None,
    ) -> None:
        self.native_message = native_message
        self.operation = operation
        prefix = f"OpenSlide error in {operation}" if operation else "OpenSlide error"
        super().__init__(f"{prefix}: {native_message}", path)


class VendorUnknownError(SlideError):
    """Raised when OpenSlide cannot identify the vendor of a file."""
