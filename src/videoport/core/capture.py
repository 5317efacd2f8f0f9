import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import numpy as np

from videoport.backends.registry import capture_candidates
from videoport.core.backend import Backend, CaptureBackend, HandleState, Source, SourceKind, classify_source
from videoport.core.errors import ClosedHandle, DecodeFailed, OpenFailed
from videoport.core.properties import PropertyId, PropertyScope, is_read_only, resolve, scope_of
from videoport.core.settings import CaptureSettings, VideoIOSettings

logger = logging.getLogger(__name__)


class VideoCapture:
    """
    A handle on a frame source: video file, camera, network stream or image sequence.

    The handle moves through UNOPENED -> OPENED -> CLOSED. Frames and
    properties are only available while it is OPENED; everything else raises
    ClosedHandle. A handle belongs to one thread at a time, and closing it
    while another thread is blocked in `read` is unsafe.

    Usage:
        with VideoCapture("clip.avi") as cap:
            for frame in cap:
                ...
    """

    def __init__(
        self,
        source: Optional[Source] = None,
        backend: Optional[Backend] = None,
        settings: Optional[Union[VideoIOSettings, CaptureSettings]] = None,
    ):
        if isinstance(settings, VideoIOSettings):
            settings = settings.capture
        self._settings: CaptureSettings = settings or CaptureSettings()
        self._backend: Optional[CaptureBackend] = None
        self._state = HandleState.UNOPENED
        self._source: Optional[Source] = None
        self._source_kind: Optional[SourceKind] = None
        self._has_grabbed = False

        if source is not None:
            self.open(source, backend)

    def open(self, source: Source, backend: Optional[Backend] = None) -> "VideoCapture":
        """
        Opens a source through the best-matching backend.

        Args:
            source (Source): A device index, file path, image-sequence pattern or
                             directory, GStreamer pipeline, or stream URI.
            backend (Optional[Backend]): Backend preference. Defaults to the
                                         configured capture backend.

        Returns:
            VideoCapture: This handle, now opened.

        Raises:
            OpenFailed: If the handle was already used, or no backend can open the source.
        """
        if self._state is not HandleState.UNOPENED:
            raise OpenFailed(f"Cannot open a capture handle that is {self._state.value}.")

        preference = backend or self._settings.backend
        kind = classify_source(source)
        is_directory = not isinstance(source, int) and Path(os.fspath(source)).is_dir()
        params = self._open_params()

        tried: List[str] = []
        for backend_cls in capture_candidates(kind, preference, is_directory=is_directory):
            candidate = backend_cls()
            tried.append(candidate.name)
            if candidate.open(source, preference, params):
                self._backend = candidate
                break
            logger.debug(f"Backend '{candidate.name}' could not open {source!r}.")
        else:
            logger.error(f"Failed to open capture source {source!r} ({kind.value}, preference={preference.name}).")
            raise OpenFailed(
                f"No backend could open {kind.value} source {source!r} "
                f"(preference={preference.name}, tried={tried or 'none'})."
            )

        self._source = source
        self._source_kind = kind
        self._state = HandleState.OPENED
        self._has_grabbed = False
        logger.info(f"Opened capture {source!r} via '{self._backend.name}' backend.")

        if self._settings.buffer_size is not None:
            if not self.set(PropertyId.BUFFER_SIZE, self._settings.buffer_size):
                logger.debug(f"Backend ignored buffer size {self._settings.buffer_size}.")
        return self

    def _open_params(self) -> Dict[int, int]:
        params = {}
        if self._settings.open_timeout_msec:
            params[resolve(PropertyId.OPEN_TIMEOUT_MSEC)] = self._settings.open_timeout_msec
        if self._settings.read_timeout_msec:
            params[resolve(PropertyId.READ_TIMEOUT_MSEC)] = self._settings.read_timeout_msec
        return params

    def _require_open(self) -> CaptureBackend:
        if self._state is not HandleState.OPENED:
            raise ClosedHandle(f"Capture handle is {self._state.value}.")
        return self._backend

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def source(self) -> Optional[Source]:
        return self._source

    @property
    def source_kind(self) -> Optional[SourceKind]:
        return self._source_kind

    @property
    def backend_name(self) -> Optional[str]:
        return self._backend.name if self._backend else None

    def is_opened(self) -> bool:
        return self._state is HandleState.OPENED and self._backend.is_opened()

    def grab(self) -> bool:
        """Advances to the next frame without decoding it. False at end of stream."""
        backend = self._require_open()
        self._has_grabbed = backend.grab()
        return self._has_grabbed

    def retrieve(self) -> np.ndarray:
        """
        Decodes the most recently grabbed frame.

        Raises:
            DecodeFailed: If no frame is grabbed or the backend cannot decode it.
        """
        backend = self._require_open()
        if not self._has_grabbed:
            raise DecodeFailed("No grabbed frame to retrieve.")

        frame = backend.retrieve()
        if frame is None:
            logger.warning(f"Failed to decode frame from {self._source!r}.")
            raise DecodeFailed(f"Backend '{backend.name}' could not decode the grabbed frame.")
        return frame

    def read(self) -> Optional[np.ndarray]:
        """
        Grabs and decodes the next frame.

        Returns:
            Optional[np.ndarray]: The frame, or None once the stream is exhausted.

        Raises:
            DecodeFailed: If the frame was grabbed but could not be decoded.
        """
        if not self.grab():
            return None
        return self.retrieve()

    def __iter__(self) -> Iterator[np.ndarray]:
        while True:
            frame = self.read()
            if frame is None:
                return
            yield frame

    def get(self, prop: PropertyId) -> Optional[float]:
        """
        Queries a property from the backend.

        Returns:
            Optional[float]: The (possibly backend-rounded) value, or None if
                             the property is unsupported.
        """
        backend = self._require_open()
        if scope_of(prop) is not PropertyScope.CAPTURE:
            return None
        return backend.get(resolve(prop))

    def set(self, prop: PropertyId, value: float) -> bool:
        """
        Best-effort property update. Re-read with `get` to see the effective
        value, since backends may clamp or round it.
        """
        backend = self._require_open()
        if scope_of(prop) is not PropertyScope.CAPTURE or is_read_only(prop):
            logger.debug(f"Rejected set of {prop.name} on capture handle.")
            return False

        accepted = backend.set(resolve(prop), value)
        if not accepted:
            logger.debug(f"Backend '{backend.name}' rejected {prop.name}={value}.")
        return accepted

    def close(self) -> None:
        """Releases the backend. Closing twice is a no-op."""
        if self._state is HandleState.CLOSED:
            return
        if self._backend is not None:
            self._backend.release()
            logger.info(f"Closed capture {self._source!r}.")
        self._state = HandleState.CLOSED
        self._has_grabbed = False

    release = close

    def __enter__(self) -> "VideoCapture":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if getattr(self, "_state", None) is HandleState.OPENED:
            self._backend.release()
            self._state = HandleState.CLOSED
            logger.warning(f"VideoCapture released dangling source: {self._source!r}")

    def __repr__(self) -> str:
        return f"VideoCapture(source={self._source!r}, state={self._state.value}, backend={self.backend_name})"
