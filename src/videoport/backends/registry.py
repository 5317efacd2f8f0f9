import logging
from typing import List, Type

from videoport.backends.image_sequence import ImageSequenceCapture, ImageSequenceWriter
from videoport.backends.opencv_backend import OpenCVCapture, OpenCVWriter
from videoport.core.backend import Backend, CaptureBackend, SourceKind, WriterBackend

logger = logging.getLogger(__name__)

## tried in order; the first backend that opens the source wins
CAPTURE_BACKENDS: List[Type[CaptureBackend]] = [OpenCVCapture, ImageSequenceCapture]
WRITER_BACKENDS: List[Type[WriterBackend]] = [OpenCVWriter, ImageSequenceWriter]


def capture_candidates(kind: SourceKind, preference: Backend, is_directory: bool = False) -> List[Type[CaptureBackend]]:
    """Lists the capture backends worth trying for a source, best match first."""
    candidates = [backend for backend in CAPTURE_BACKENDS if backend.supports(kind, preference)]
    if is_directory:
        ## cv2 cannot read a bare directory
        candidates = [backend for backend in candidates if backend is not OpenCVCapture]
    logger.debug(f"Capture candidates for {kind.value} ({preference.name}): {[b.name for b in candidates]}")
    return candidates


def writer_candidates(path: str, preference: Backend) -> List[Type[WriterBackend]]:
    """Lists the writer backends worth trying for an output path, best match first."""
    candidates = [backend for backend in WRITER_BACKENDS if backend.supports(path, preference)]
    logger.debug(f"Writer candidates for '{path}' ({preference.name}): {[b.name for b in candidates]}")
    return candidates
