import os
import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

Source = Union[int, str, os.PathLike]
FrameSize = Tuple[int, int]

## printf-style frame index, e.g. "img_%04d.png"
_SEQUENCE_PATTERN = re.compile(r"%0?\d*d")


class Backend(Enum):
    """Backend preference. Values are OpenCV API preference ids, except PILLOW."""

    ANY = 0
    V4L2 = 200
    DSHOW = 700
    AVFOUNDATION = 1200
    MSMF = 1400
    GSTREAMER = 1800
    FFMPEG = 1900
    IMAGES = 2000
    OPENCV_MJPEG = 2200
    PILLOW = -1

    @classmethod
    def from_name(cls, name: str) -> "Backend":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown backend '{name}'. Expected one of: {valid}.")


class SourceKind(Enum):
    DEVICE = "device"
    FILE = "file"
    URI = "uri"
    IMAGE_SEQUENCE = "image_sequence"
    PIPELINE = "pipeline"


def is_sequence_pattern(path: str) -> bool:
    return bool(_SEQUENCE_PATTERN.search(path))


def classify_source(source: Source) -> SourceKind:
    """Works out what kind of frame source a descriptor names."""
    if isinstance(source, bool):
        raise TypeError("A boolean is not a valid capture source.")
    if isinstance(source, int):
        return SourceKind.DEVICE

    text = os.fspath(source)
    if "://" in text:
        return SourceKind.URI
    if " ! " in text:
        return SourceKind.PIPELINE
    if is_sequence_pattern(text) or Path(text).is_dir():
        return SourceKind.IMAGE_SEQUENCE
    return SourceKind.FILE


class CaptureBackend(ABC):
    """
    Abstract base class for a frame source implementation.

    A backend instance serves one handle. It reports failures through its
    return values; the owning VideoCapture turns them into exceptions.
    """

    name: str = "base"

    @classmethod
    @abstractmethod
    def supports(cls, kind: SourceKind, preference: Backend) -> bool:
        """Whether this backend should be tried for a source of `kind`."""
        pass

    @abstractmethod
    def open(self, source: Source, preference: Backend, params: Dict[int, int]) -> bool:
        """
        Acquires the source.

        Args:
            source (Source): Device index, path, pattern, pipeline or URI.
            preference (Backend): The caller's backend preference.
            params (Dict[int, int]): Open-time property codes and values.

        Returns:
            bool: True if the source is now open.
        """
        pass

    @abstractmethod
    def is_opened(self) -> bool:
        pass

    @abstractmethod
    def grab(self) -> bool:
        pass

    @abstractmethod
    def retrieve(self) -> Optional[np.ndarray]:
        """Decodes the last grabbed frame, or returns None on failure."""
        pass

    @abstractmethod
    def get(self, code: int) -> Optional[float]:
        pass

    @abstractmethod
    def set(self, code: int, value: float) -> bool:
        pass

    @abstractmethod
    def release(self) -> None:
        pass


class WriterBackend(ABC):
    """Abstract base class for a frame sink implementation."""

    name: str = "base"

    @classmethod
    @abstractmethod
    def supports(cls, path: str, preference: Backend) -> bool:
        pass

    @abstractmethod
    def open(
        self,
        path: str,
        preference: Backend,
        codec: int,
        fps: float,
        frame_size: FrameSize,
        is_color: bool,
    ) -> bool:
        pass

    @abstractmethod
    def is_opened(self) -> bool:
        pass

    @abstractmethod
    def write(self, frame: np.ndarray) -> None:
        """Encodes one frame. May raise on backend failure."""
        pass

    @abstractmethod
    def get(self, code: int) -> Optional[float]:
        pass

    @abstractmethod
    def set(self, code: int, value: float) -> bool:
        pass

    @abstractmethod
    def release(self) -> None:
        """Flushes and finalizes the output."""
        pass


class HandleState(Enum):
    UNOPENED = "unopened"
    OPENED = "opened"
    CLOSED = "closed"
