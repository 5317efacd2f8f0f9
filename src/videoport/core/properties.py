from enum import Enum
from types import MappingProxyType
from typing import Mapping


class PropertyScope(Enum):
    CAPTURE = "capture"
    WRITER = "writer"


class PropertyId(Enum):
    """Stable property identifiers exposed to callers of capture and writer handles."""

    ## capture side
    POS_MSEC = "pos_msec"
    POS_FRAMES = "pos_frames"
    POS_AVI_RATIO = "pos_avi_ratio"
    FRAME_WIDTH = "frame_width"
    FRAME_HEIGHT = "frame_height"
    FPS = "fps"
    FOURCC = "fourcc"
    FRAME_COUNT = "frame_count"
    FORMAT = "format"
    MODE = "mode"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    HUE = "hue"
    GAIN = "gain"
    EXPOSURE = "exposure"
    CONVERT_RGB = "convert_rgb"
    WHITE_BALANCE_BLUE_U = "white_balance_blue_u"
    RECTIFICATION = "rectification"
    MONOCHROME = "monochrome"
    SHARPNESS = "sharpness"
    AUTO_EXPOSURE = "auto_exposure"
    GAMMA = "gamma"
    TEMPERATURE = "temperature"
    TRIGGER = "trigger"
    TRIGGER_DELAY = "trigger_delay"
    WHITE_BALANCE_RED_V = "white_balance_red_v"
    ZOOM = "zoom"
    FOCUS = "focus"
    GUID = "guid"
    ISO_SPEED = "iso_speed"
    BACKLIGHT = "backlight"
    PAN = "pan"
    TILT = "tilt"
    ROLL = "roll"
    IRIS = "iris"
    SETTINGS = "settings"
    BUFFER_SIZE = "buffer_size"
    AUTOFOCUS = "autofocus"
    BACKEND = "backend"
    OPEN_TIMEOUT_MSEC = "open_timeout_msec"
    READ_TIMEOUT_MSEC = "read_timeout_msec"

    ## writer side
    QUALITY = "quality"
    FRAME_BYTES = "frame_bytes"
    NSTRIPES = "nstripes"
    IS_COLOR = "is_color"

    @property
    def scope(self) -> PropertyScope:
        return scope_of(self)


_P = PropertyId

## OpenCV CAP_PROP_* values
_CAPTURE_CODES = {
    _P.POS_MSEC: 0,
    _P.POS_FRAMES: 1,
    _P.POS_AVI_RATIO: 2,
    _P.FRAME_WIDTH: 3,
    _P.FRAME_HEIGHT: 4,
    _P.FPS: 5,
    _P.FOURCC: 6,
    _P.FRAME_COUNT: 7,
    _P.FORMAT: 8,
    _P.MODE: 9,
    _P.BRIGHTNESS: 10,
    _P.CONTRAST: 11,
    _P.SATURATION: 12,
    _P.HUE: 13,
    _P.GAIN: 14,
    _P.EXPOSURE: 15,
    _P.CONVERT_RGB: 16,
    _P.WHITE_BALANCE_BLUE_U: 17,
    _P.RECTIFICATION: 18,
    _P.MONOCHROME: 19,
    _P.SHARPNESS: 20,
    _P.AUTO_EXPOSURE: 21,
    _P.GAMMA: 22,
    _P.TEMPERATURE: 23,
    _P.TRIGGER: 24,
    _P.TRIGGER_DELAY: 25,
    _P.WHITE_BALANCE_RED_V: 26,
    _P.ZOOM: 27,
    _P.FOCUS: 28,
    _P.GUID: 29,
    _P.ISO_SPEED: 30,
    _P.BACKLIGHT: 32,
    _P.PAN: 33,
    _P.TILT: 34,
    _P.ROLL: 35,
    _P.IRIS: 36,
    _P.SETTINGS: 37,
    _P.BUFFER_SIZE: 38,
    _P.AUTOFOCUS: 39,
    _P.BACKEND: 42,
    _P.OPEN_TIMEOUT_MSEC: 53,
    _P.READ_TIMEOUT_MSEC: 54,
}

## OpenCV VIDEOWRITER_PROP_* values
_WRITER_CODES = {
    _P.QUALITY: 1,
    _P.FRAME_BYTES: 2,
    _P.NSTRIPES: 3,
    _P.IS_COLOR: 4,
}

BACKEND_CODES: Mapping[PropertyId, int] = MappingProxyType({**_CAPTURE_CODES, **_WRITER_CODES})

_SCOPES: Mapping[PropertyId, PropertyScope] = MappingProxyType({
    **{prop: PropertyScope.CAPTURE for prop in _CAPTURE_CODES},
    **{prop: PropertyScope.WRITER for prop in _WRITER_CODES},
})

READ_ONLY = frozenset({_P.FRAME_COUNT, _P.FRAME_BYTES, _P.BACKEND})


def resolve(prop: PropertyId) -> int:
    """Returns the backend numeric code for a property identifier."""
    return BACKEND_CODES[prop]


def scope_of(prop: PropertyId) -> PropertyScope:
    return _SCOPES[prop]


def is_read_only(prop: PropertyId) -> bool:
    return prop in READ_ONLY
