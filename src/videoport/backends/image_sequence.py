"""
Image-sequence backend built on Pillow.

Reads numbered still images (``frames/img_%04d.png``) or every image in a
directory as if they were consecutive video frames, and writes frames out the
same way. Frames are exchanged in BGR channel order so callers get the same
layout they would from the OpenCV backend.
"""

import logging
import math
import os
from pathlib import Path
from typing import Dict, List, Optional

import cv2
import numpy as np
from PIL import Image

from videoport.core.backend import (
    Backend,
    CaptureBackend,
    FrameSize,
    Source,
    SourceKind,
    WriterBackend,
    is_sequence_pattern,
)
from videoport.core.properties import PropertyId, resolve

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".webp"}

## the first frame of a pattern may be numbered anywhere in [0, MAX_START_INDEX]
MAX_START_INDEX = 4
DEFAULT_QUALITY = 95

_POS_FRAMES = resolve(PropertyId.POS_FRAMES)
_POS_AVI_RATIO = resolve(PropertyId.POS_AVI_RATIO)
_FRAME_COUNT = resolve(PropertyId.FRAME_COUNT)
_FRAME_WIDTH = resolve(PropertyId.FRAME_WIDTH)
_FRAME_HEIGHT = resolve(PropertyId.FRAME_HEIGHT)
_QUALITY = resolve(PropertyId.QUALITY)
_FRAME_BYTES = resolve(PropertyId.FRAME_BYTES)


def load_image(image_path: Path) -> np.ndarray:
    """Loads an image as a BGR (or single-channel grayscale) uint8 array."""
    with Image.open(image_path) as img:
        if img.mode in ("L", "I;16", "I", "F"):
            return np.array(img.convert("L"))
        return cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2BGR)


def save_image(frame: np.ndarray, output_path: Path, quality: int = DEFAULT_QUALITY) -> None:
    """Saves a BGR or grayscale frame through Pillow."""
    if frame.ndim == 2:
        img = Image.fromarray(frame, "L")
    else:
        img = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), "RGB")
    img.save(output_path, quality=quality)


def _pattern_frames(pattern: str) -> List[Path]:
    start = next(
        (index for index in range(MAX_START_INDEX + 1) if Path(pattern % index).is_file()),
        None,
    )
    if start is None:
        return []

    frames = []
    index = start
    while Path(pattern % index).is_file():
        frames.append(Path(pattern % index))
        index += 1
    return frames


def _directory_frames(directory: Path) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS)


class ImageSequenceCapture(CaptureBackend):
    """Serves a numbered image pattern or an image directory as a seekable frame source."""

    name = "pillow"

    def __init__(self):
        self._frames: List[Path] = []
        self._position = 0
        self._grabbed: Optional[Path] = None
        self._size: FrameSize = (0, 0)
        self._opened = False

    @classmethod
    def supports(cls, kind: SourceKind, preference: Backend) -> bool:
        if preference is Backend.PILLOW:
            return kind in (SourceKind.IMAGE_SEQUENCE, SourceKind.FILE)
        return preference is Backend.ANY and kind is SourceKind.IMAGE_SEQUENCE

    def open(self, source: Source, preference: Backend, params: Dict[int, int]) -> bool:
        if isinstance(source, int):
            return False

        text = os.fspath(source)
        if Path(text).is_dir():
            frames = _directory_frames(Path(text))
        elif is_sequence_pattern(text):
            try:
                frames = _pattern_frames(text)
            except (TypeError, ValueError) as e:
                logger.debug(f"Invalid image sequence pattern '{text}': {e}")
                return False
        elif Path(text).is_file():
            frames = [Path(text)]
        else:
            frames = []

        if not frames:
            return False

        try:
            with Image.open(frames[0]) as first:
                self._size = first.size
        except OSError as e:
            logger.debug(f"Cannot read first frame '{frames[0]}': {e}")
            return False

        self._frames = frames
        self._position = 0
        self._grabbed = None
        self._opened = True
        logger.debug(f"Image sequence opened with {len(frames)} frames at {self._size[0]}x{self._size[1]}.")
        return True

    def is_opened(self) -> bool:
        return self._opened

    def grab(self) -> bool:
        if self._position >= len(self._frames):
            self._grabbed = None
            return False
        self._grabbed = self._frames[self._position]
        self._position += 1
        return True

    def retrieve(self) -> Optional[np.ndarray]:
        if self._grabbed is None:
            return None
        try:
            return load_image(self._grabbed)
        except OSError as e:
            logger.warning(f"Cannot decode frame '{self._grabbed}': {e}")
            return None

    def get(self, code: int) -> Optional[float]:
        count = len(self._frames)
        if code == _POS_FRAMES:
            return float(self._position)
        if code == _POS_AVI_RATIO:
            return self._position / count if count else 0.0
        if code == _FRAME_COUNT:
            return float(count)
        if code == _FRAME_WIDTH:
            return float(self._size[0])
        if code == _FRAME_HEIGHT:
            return float(self._size[1])
        return None

    def set(self, code: int, value: float) -> bool:
        if not math.isfinite(value):
            return False
        count = len(self._frames)
        if code == _POS_FRAMES:
            target = int(value)
        elif code == _POS_AVI_RATIO:
            target = int(round(value * count))
        else:
            return False

        self._position = min(max(target, 0), count)
        self._grabbed = None
        return True

    def release(self) -> None:
        self._frames = []
        self._grabbed = None
        self._opened = False


class ImageSequenceWriter(WriterBackend):
    """Writes every frame to its own numbered image file."""

    name = "pillow"

    def __init__(self):
        self._pattern: Optional[str] = None
        self._index = 0
        self._quality = DEFAULT_QUALITY
        self._last_bytes = 0

    @classmethod
    def supports(cls, path: str, preference: Backend) -> bool:
        if preference is Backend.PILLOW:
            return True
        return preference is Backend.ANY and is_sequence_pattern(path)

    def open(
        self,
        path: str,
        preference: Backend,
        codec: int,
        fps: float,
        frame_size: FrameSize,
        is_color: bool,
    ) -> bool:
        if not is_sequence_pattern(path):
            logger.debug(f"'{path}' is not a numbered image pattern.")
            return False
        try:
            path % 0
        except (TypeError, ValueError) as e:
            logger.debug(f"Cannot number frames with pattern '{path}': {e}")
            return False

        target = Path(path)
        if target.suffix.lower() not in Image.registered_extensions():
            logger.debug(f"Pillow cannot save images with extension '{target.suffix}'.")
            return False
        if not target.parent.is_dir() or not os.access(target.parent, os.W_OK):
            logger.debug(f"Output directory '{target.parent}' is missing or not writable.")
            return False

        self._pattern = path
        self._index = 0
        return True

    def is_opened(self) -> bool:
        return self._pattern is not None

    def write(self, frame: np.ndarray) -> None:
        output_path = Path(self._pattern % self._index)
        save_image(frame, output_path, quality=self._quality)
        self._last_bytes = output_path.stat().st_size
        self._index += 1

    def get(self, code: int) -> Optional[float]:
        if code == _QUALITY:
            return float(self._quality)
        if code == _FRAME_BYTES:
            return float(self._last_bytes)
        return None

    def set(self, code: int, value: float) -> bool:
        if code == _QUALITY and 0 <= value <= 100:
            self._quality = int(value)
            return True
        return False

    def release(self) -> None:
        self._pattern = None
