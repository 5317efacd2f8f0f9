import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from videoport.backends.registry import writer_candidates
from videoport.core import fourcc
from videoport.core.backend import Backend, FrameSize, HandleState, WriterBackend
from videoport.core.errors import ClosedHandle, EncodeFailed, OpenFailed
from videoport.core.properties import PropertyId, PropertyScope, is_read_only, resolve, scope_of
from videoport.core.settings import VideoIOSettings, WriterSettings

logger = logging.getLogger(__name__)

Codec = Union[int, str]


class VideoWriter:
    """
    A handle on an encoded output: a video container or a numbered image sequence.

    Codec, frame rate, frame size and colour mode are negotiated when the
    handle opens and stay fixed until it closes. Every frame written must
    match them exactly.

    Usage:
        with VideoWriter("out.avi", "MJPG", 30.0, (320, 240)) as writer:
            writer.write(frame)
    """

    def __init__(
        self,
        path: Optional[Union[str, os.PathLike]] = None,
        codec: Optional[Codec] = None,
        fps: Optional[float] = None,
        frame_size: Optional[FrameSize] = None,
        is_color: bool = True,
        backend: Optional[Backend] = None,
        settings: Optional[Union[VideoIOSettings, WriterSettings]] = None,
    ):
        if isinstance(settings, VideoIOSettings):
            settings = settings.writer
        self._settings: WriterSettings = settings or WriterSettings()
        self._backend: Optional[WriterBackend] = None
        self._state = HandleState.UNOPENED
        self._path: Optional[str] = None
        self._codec: Optional[int] = None
        self._fps: Optional[float] = None
        self._frame_size: Optional[FrameSize] = None
        self._is_color = is_color
        self._frames_written = 0

        if path is not None:
            if codec is None or fps is None or frame_size is None:
                raise OpenFailed("A writer opened at construction needs codec, fps and frame_size.")
            self.open(path, codec, fps, frame_size, is_color, backend)

    def open(
        self,
        path: Union[str, os.PathLike],
        codec: Codec,
        fps: float,
        frame_size: FrameSize,
        is_color: bool = True,
        backend: Optional[Backend] = None,
    ) -> "VideoWriter":
        """
        Opens the output and fixes its encoding parameters.

        Args:
            path (Union[str, os.PathLike]): Output file. The container is
                                            inferred from its extension.
            codec (Codec): Packed FOURCC, or its 4-character form such as "MJPG".
            fps (float): Frame rate of the encoded stream.
            frame_size (FrameSize): (width, height) of every frame.
            is_color (bool): Whether frames are 3-channel BGR or single-channel.
            backend (Optional[Backend]): Backend preference. Defaults to the
                                         configured writer backend.

        Returns:
            VideoWriter: This handle, now opened.

        Raises:
            OpenFailed: If the parameters are invalid, the target is not
                        writable, or no backend supports the codec/container.
        """
        if self._state is not HandleState.UNOPENED:
            raise OpenFailed(f"Cannot open a writer handle that is {self._state.value}.")

        path = os.fspath(path)
        packed = self._normalize_codec(codec)
        width, height = self._validate_size(frame_size)
        if not fps or fps <= 0:
            raise OpenFailed(f"Frame rate must be positive, got {fps!r}.")

        parent = Path(path).parent
        if not parent.is_dir():
            logger.error(f"Output directory does not exist: {parent}")
            raise OpenFailed(f"Output directory '{parent}' does not exist.")

        preference = backend or self._settings.backend
        tried: List[str] = []
        for backend_cls in writer_candidates(path, preference):
            candidate = backend_cls()
            tried.append(candidate.name)
            if candidate.open(path, preference, packed, float(fps), (width, height), bool(is_color)):
                self._backend = candidate
                break
            logger.debug(f"Backend '{candidate.name}' could not open '{path}'.")
        else:
            logger.error(f"Failed to open writer '{path}' with codec {fourcc.unpack(packed)!r}.")
            raise OpenFailed(
                f"No backend could open '{path}' with codec {fourcc.unpack(packed)!r} "
                f"(preference={preference.name}, tried={tried or 'none'})."
            )

        self._path = path
        self._codec = packed
        self._fps = float(fps)
        self._frame_size = (width, height)
        self._is_color = bool(is_color)
        self._frames_written = 0
        self._state = HandleState.OPENED
        logger.info(
            f"Opened writer '{path}' via '{self._backend.name}' backend "
            f"[{self.codec_name} {width}x{height} @ {self._fps:g} fps, color={self._is_color}]."
        )

        if self._settings.quality is not None:
            if not self.set(PropertyId.QUALITY, self._settings.quality):
                logger.debug(f"Backend ignored quality {self._settings.quality}.")
        return self

    @staticmethod
    def _normalize_codec(codec: Codec) -> int:
        if isinstance(codec, str):
            return fourcc.pack(codec)
        if isinstance(codec, bool) or not isinstance(codec, int):
            raise OpenFailed(f"Codec must be a FOURCC string or packed integer, got {codec!r}.")
        ## accept the signed form cv2 sometimes hands back
        packed = codec & 0xFFFFFFFF if codec < 0 else codec
        if packed > 0xFFFFFFFF:
            raise OpenFailed(f"Codec value {codec} does not fit in 32 bits.")
        return packed

    @staticmethod
    def _validate_size(frame_size: FrameSize) -> FrameSize:
        try:
            width, height = (int(v) for v in frame_size)
        except (TypeError, ValueError):
            raise OpenFailed(f"Frame size must be a (width, height) pair, got {frame_size!r}.")
        if width <= 0 or height <= 0:
            raise OpenFailed(f"Frame size must be positive, got {width}x{height}.")
        return width, height

    def _require_open(self) -> WriterBackend:
        if self._state is not HandleState.OPENED:
            raise ClosedHandle(f"Writer handle is {self._state.value}.")
        return self._backend

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def codec(self) -> Optional[int]:
        return self._codec

    @property
    def codec_name(self) -> Optional[str]:
        return fourcc.unpack(self._codec) if self._codec is not None else None

    @property
    def fps(self) -> Optional[float]:
        return self._fps

    @property
    def frame_size(self) -> Optional[FrameSize]:
        return self._frame_size

    @property
    def is_color(self) -> bool:
        return self._is_color

    @property
    def frames_written(self) -> int:
        return self._frames_written

    @property
    def backend_name(self) -> Optional[str]:
        return self._backend.name if self._backend else None

    def is_opened(self) -> bool:
        return self._state is HandleState.OPENED and self._backend.is_opened()

    def _check_frame(self, frame: np.ndarray) -> None:
        if not isinstance(frame, np.ndarray) or frame.dtype != np.uint8:
            raise EncodeFailed(f"Frames must be uint8 numpy arrays, got {type(frame).__name__}.")

        if frame.ndim < 2:
            raise EncodeFailed(f"Frame has invalid shape {frame.shape}.")
        height, width = frame.shape[:2]
        if (width, height) != self._frame_size:
            raise EncodeFailed(
                f"Frame size {width}x{height} does not match writer size "
                f"{self._frame_size[0]}x{self._frame_size[1]}."
            )

        channels = 1 if frame.ndim == 2 else frame.shape[2]
        expected = 3 if self._is_color else 1
        if frame.ndim > 3 or channels != expected:
            raise EncodeFailed(f"Frame has {channels} channel(s); writer expects {expected}.")

    def write(self, frame: np.ndarray) -> None:
        """
        Encodes and appends one frame.

        Raises:
            ClosedHandle: If the writer is not open.
            EncodeFailed: If the frame does not match the negotiated size and
                          colour mode, or the backend fails to encode it.
        """
        backend = self._require_open()
        try:
            self._check_frame(frame)
        except EncodeFailed as e:
            logger.warning(f"Rejected frame for '{self._path}': {e}")
            raise

        if not self._is_color and frame.ndim == 3:
            frame = frame[:, :, 0]
        try:
            backend.write(frame)
        except Exception as e:
            logger.error(f"Backend '{backend.name}' failed to encode frame {self._frames_written}: {e}")
            raise EncodeFailed(f"Encoding frame {self._frames_written} failed: {e}") from e
        self._frames_written += 1

    def get(self, prop: PropertyId) -> Optional[float]:
        """Queries a writer property. Returns None if it is unsupported."""
        backend = self._require_open()
        if scope_of(prop) is not PropertyScope.WRITER:
            return None
        return backend.get(resolve(prop))

    def set(self, prop: PropertyId, value: float) -> bool:
        """Best-effort writer property update, e.g. QUALITY. False when rejected."""
        backend = self._require_open()
        if scope_of(prop) is not PropertyScope.WRITER or is_read_only(prop):
            logger.debug(f"Rejected set of {prop.name} on writer handle.")
            return False

        accepted = backend.set(resolve(prop), value)
        if not accepted:
            logger.debug(f"Backend '{backend.name}' rejected {prop.name}={value}.")
        return accepted

    def close(self) -> None:
        """Flushes and finalizes the output. Closing twice is a no-op."""
        if self._state is HandleState.CLOSED:
            return
        if self._backend is not None:
            self._backend.release()
            logger.info(f"Closed writer '{self._path}' after {self._frames_written} frames.")
        self._state = HandleState.CLOSED

    release = close

    def __enter__(self) -> "VideoWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if getattr(self, "_state", None) is HandleState.OPENED:
            self._backend.release()
            self._state = HandleState.CLOSED
            logger.warning(f"VideoWriter finalized dangling output: {self._path}")

    def __repr__(self) -> str:
        return (
            f"VideoWriter(path={self._path!r}, codec={self.codec_name!r}, fps={self._fps}, "
            f"frame_size={self._frame_size}, state={self._state.value})"
        )
