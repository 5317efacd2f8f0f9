import logging
import math
import os
from typing import Dict, List, Optional

import cv2
import numpy as np

from videoport.core.backend import (
    Backend,
    CaptureBackend,
    FrameSize,
    Source,
    SourceKind,
    WriterBackend,
)
from videoport.core.properties import PropertyId, resolve

logger = logging.getLogger(__name__)


def _to_cv_fourcc(codec: int) -> int:
    """cv2 takes the FOURCC as a signed 32-bit int."""
    return codec - (1 << 32) if codec >= (1 << 31) else codec


_CODES = {prop: resolve(prop) for prop in PropertyId}

## ids where 0.0 is a real reading rather than cv2's "no value"
CAPTURE_ZERO_VALID = frozenset(_CODES[p] for p in (
    PropertyId.POS_MSEC, PropertyId.POS_FRAMES, PropertyId.POS_AVI_RATIO,
    PropertyId.CONVERT_RGB, PropertyId.AUTOFOCUS, PropertyId.AUTO_EXPOSURE,
    PropertyId.BRIGHTNESS, PropertyId.CONTRAST, PropertyId.SATURATION, PropertyId.HUE,
))
## camera controls whose range goes below zero
CAPTURE_SIGNED = frozenset(_CODES[p] for p in (
    PropertyId.BRIGHTNESS, PropertyId.CONTRAST, PropertyId.SATURATION, PropertyId.HUE,
    PropertyId.GAIN, PropertyId.EXPOSURE, PropertyId.PAN, PropertyId.TILT, PropertyId.ROLL,
))
WRITER_ZERO_VALID = frozenset({_CODES[PropertyId.QUALITY], _CODES[PropertyId.IS_COLOR]})

_FOURCC = _CODES[PropertyId.FOURCC]
_UNSUPPORTED = -1.0


def _clean_capture_value(code: int, value: float) -> Optional[float]:
    """
    Maps cv2's capture readings onto the None sentinel.

    cv2 answers an unsupported property with -1 or 0 rather than an error,
    so -1 is always treated as unsupported, other negatives only count for
    signed camera controls, and 0 only for ids in CAPTURE_ZERO_VALID.
    """
    value = float(value)
    if math.isnan(value) or value == _UNSUPPORTED:
        return None
    if code == _FOURCC:
        ## some backends report the tag as a signed int32
        return float(int(value) & 0xFFFFFFFF) if value else None
    if value < 0 and code not in CAPTURE_SIGNED:
        return None
    if value == 0 and code not in CAPTURE_ZERO_VALID:
        return None
    return value


def _clean_writer_value(code: int, value: float) -> Optional[float]:
    value = float(value)
    if math.isnan(value) or value < 0:
        return None
    if value == 0 and code not in WRITER_ZERO_VALID:
        return None
    return value


class OpenCVCapture(CaptureBackend):
    """Frame source backed by cv2.VideoCapture (files, devices, URIs, pipelines)."""

    name = "opencv"

    def __init__(self):
        self._cap: Optional[cv2.VideoCapture] = None

    @classmethod
    def supports(cls, kind: SourceKind, preference: Backend) -> bool:
        return preference is not Backend.PILLOW

    def open(self, source: Source, preference: Backend, params: Dict[int, int]) -> bool:
        target = source if isinstance(source, int) else os.fspath(source)
        flat_params: List[int] = []
        for code, value in params.items():
            flat_params.extend((int(code), int(value)))

        try:
            if flat_params:
                self._cap = cv2.VideoCapture(target, preference.value, flat_params)
            else:
                self._cap = cv2.VideoCapture(target, preference.value)
        except cv2.error as e:
            logger.debug(f"cv2.VideoCapture raised while opening {target!r}: {e}")
            self._cap = None
            return False

        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            return False
        return True

    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def grab(self) -> bool:
        try:
            return bool(self._cap.grab())
        except cv2.error as e:
            logger.warning(f"Frame grab failed: {e}")
            return False

    def retrieve(self) -> Optional[np.ndarray]:
        try:
            ok, frame = self._cap.retrieve()
        except cv2.error as e:
            logger.warning(f"Frame retrieve failed: {e}")
            return None
        return frame if ok and frame is not None else None

    def get(self, code: int) -> Optional[float]:
        try:
            return _clean_capture_value(code, self._cap.get(code))
        except cv2.error:
            return None

    def set(self, code: int, value: float) -> bool:
        try:
            return bool(self._cap.set(code, float(value)))
        except cv2.error:
            return False

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None


class OpenCVWriter(WriterBackend):
    """Frame sink backed by cv2.VideoWriter. Container is inferred from the extension."""

    name = "opencv"

    def __init__(self):
        self._writer: Optional[cv2.VideoWriter] = None

    @classmethod
    def supports(cls, path: str, preference: Backend) -> bool:
        return preference is not Backend.PILLOW

    def open(
        self,
        path: str,
        preference: Backend,
        codec: int,
        fps: float,
        frame_size: FrameSize,
        is_color: bool,
    ) -> bool:
        try:
            self._writer = cv2.VideoWriter(
                path, preference.value, _to_cv_fourcc(codec), float(fps), tuple(frame_size), bool(is_color)
            )
        except cv2.error as e:
            logger.debug(f"cv2.VideoWriter raised while opening '{path}': {e}")
            self._writer = None
            return False

        if not self._writer.isOpened():
            self._writer.release()
            self._writer = None
            return False
        return True

    def is_opened(self) -> bool:
        return self._writer is not None and self._writer.isOpened()

    def write(self, frame: np.ndarray) -> None:
        self._writer.write(frame)

    def get(self, code: int) -> Optional[float]:
        try:
            return _clean_writer_value(code, self._writer.get(code))
        except cv2.error:
            return None

    def set(self, code: int, value: float) -> bool:
        try:
            return bool(self._writer.set(code, float(value)))
        except cv2.error:
            return False

    def release(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
