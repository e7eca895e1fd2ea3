"""Exception classes for frame rendering."""


class FrameError(Exception):
    """Base exception for all frame rendering errors."""

    pass


class InvalidColorError(FrameError, ValueError):
    """Raised when a configured color can not be rendered."""

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(
            f'Invalid {field}: "{value}". Please enter a valid color value '
            f'(e.g., #ffffff, rgb(255,255,255), or a named color like "red").'
        )


class GradientColorError(FrameError, ValueError):
    """Raised when a gradient can not be built from its two stops."""

    def __init__(self, start: object, end: object, reason: str | None = None):
        self.start = start
        self.end = end
        message = (
            f'Failed to create gradient from "{start}" to "{end}". '
            f"Please check that both gradient colors are valid."
        )
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class SurfaceUnavailableError(FrameError):
    """Raised when no 2D drawing surface can be allocated."""

    pass


class DecodeError(FrameError):
    """Raised when a source file can not be decoded into an image."""

    pass


class EncodeError(FrameError):
    """Raised when a finished surface can not be encoded."""

    pass


class BatchFailedError(FrameError):
    """Raised when every item of a bulk batch failed."""

    def __init__(self, errors: list):
        self.errors = errors
        super().__init__(f"All {len(errors)} images failed to process")
