"""
Conversion between four-character codec tags and their packed 32-bit form.

A FOURCC such as "MJPG" is stored little-endian: the first character is the
least significant byte. This is the same layout ``cv2.VideoWriter_fourcc``
produces and ``CAP_PROP_FOURCC`` reports, so packed values can be passed
straight through property get/set.
"""

FOURCC_LENGTH = 4
_MAX_VALUE = 0xFFFFFFFF


class FourCCError(ValueError):
    """Base exception for malformed FOURCC input."""
    pass


class InvalidLength(FourCCError):
    """Raised when a FOURCC string is not exactly four characters long."""
    pass


class InvalidCharacter(FourCCError):
    """Raised when a FOURCC character does not fit into a single byte."""
    pass


def pack(code: str) -> int:
    """
    Packs a 4-character code into an unsigned 32-bit integer.

    Args:
        code (str): The codec tag, e.g. "MJPG".

    Returns:
        int: The packed value, first character in the lowest byte.

    Raises:
        InvalidLength: If `code` is not exactly 4 characters.
        InvalidCharacter: If a character's code point is above 255.
    """
    if len(code) != FOURCC_LENGTH:
        raise InvalidLength(f"FOURCC must be exactly {FOURCC_LENGTH} characters, got {code!r} ({len(code)}).")

    value = 0
    for shift, char in enumerate(code):
        byte = ord(char)
        if byte > 0xFF:
            raise InvalidCharacter(f"FOURCC character {char!r} in {code!r} does not fit in one byte.")
        value |= byte << (8 * shift)
    return value


def unpack(value: int) -> str:
    """
    Unpacks a 32-bit integer into its 4-character code.

    Every unsigned 32-bit value has a decoding, though not necessarily a
    printable one.

    Raises:
        ValueError: If `value` is not in the unsigned 32-bit range.
    """
    if not 0 <= value <= _MAX_VALUE:
        raise ValueError(f"FOURCC value must be an unsigned 32-bit integer, got {value}.")
    return "".join(chr((value >> (8 * shift)) & 0xFF) for shift in range(FOURCC_LENGTH))


def fourcc(c1: str, c2: str, c3: str, c4: str) -> int:
    """Packs four separate characters, like ``cv2.VideoWriter_fourcc(*"MJPG")``."""
    return pack("".join((c1, c2, c3, c4)))
