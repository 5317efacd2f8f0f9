class VideoIOError(Exception):
    """Base exception for all capture and writer handle errors."""
    pass


class OpenFailed(VideoIOError):
    """Raised when a source or sink cannot be acquired by any backend."""
    pass


class ClosedHandle(VideoIOError):
    """Raised when an operation is attempted on a handle that is not open."""
    pass


class FrameError(VideoIOError):
    """Per-frame failure. The handle stays open and usable."""
    pass


class DecodeFailed(FrameError):
    pass


class EncodeFailed(FrameError):
    pass
