import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from videoport.core.backend import Backend
from videoport.core.config_loader import BaseConfigLoader, ConfigLoadingError, YamlConfigLoader

logger = logging.getLogger(__name__)


def _backend(section: Dict[str, Any], section_name: str) -> Backend:
    value = section.get("backend", "any")
    try:
        return Backend.from_name(str(value))
    except ValueError as e:
        raise ConfigLoadingError(f"[{section_name}] {e}") from e


def _non_negative_int(section: Dict[str, Any], key: str, section_name: str, default: Optional[int]) -> Optional[int]:
    value = section.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigLoadingError(f"[{section_name}] '{key}' must be a non-negative integer, got {value!r}.")
    return value


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigLoadingError(f"Section '{name}' must be a dictionary.")
    return section


@dataclass(frozen=True)
class CaptureSettings:
    backend: Backend = Backend.ANY
    open_timeout_msec: int = 0  ## 0 keeps the backend's own timeout
    read_timeout_msec: int = 0
    buffer_size: Optional[int] = None

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "CaptureSettings":
        return cls(
            backend=_backend(section, "capture"),
            open_timeout_msec=_non_negative_int(section, "open_timeout_msec", "capture", 0),
            read_timeout_msec=_non_negative_int(section, "read_timeout_msec", "capture", 0),
            buffer_size=_non_negative_int(section, "buffer_size", "capture", None),
        )


@dataclass(frozen=True)
class WriterSettings:
    backend: Backend = Backend.ANY
    quality: Optional[float] = None

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "WriterSettings":
        quality = section.get("quality")
        if quality is not None:
            if isinstance(quality, bool) or not isinstance(quality, (int, float)) or not 0 <= quality <= 100:
                raise ConfigLoadingError(f"[writer] 'quality' must be a number in [0, 100], got {quality!r}.")
            quality = float(quality)
        return cls(backend=_backend(section, "writer"), quality=quality)


@dataclass(frozen=True)
class VideoIOSettings:
    """Defaults applied by capture and writer handles when they open."""

    capture: CaptureSettings = field(default_factory=CaptureSettings)
    writer: WriterSettings = field(default_factory=WriterSettings)
    logging: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoIOSettings":
        return cls(
            capture=CaptureSettings.from_dict(_section(data, "capture")),
            writer=WriterSettings.from_dict(_section(data, "writer")),
            logging=dict(_section(data, "logging")),
        )


def load_settings(config_path: Path, loader: Optional[BaseConfigLoader] = None) -> VideoIOSettings:
    """Loads a configuration file and builds the typed settings from it."""
    loader = loader or YamlConfigLoader()
    logger.info(f"Loading videoport settings from: {config_path}")
    return VideoIOSettings.from_dict(loader.load(Path(config_path)))
