"""Shared pytest configuration and fixtures for the videoport test suite."""

import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Ensure the src directory is importable without an install
SRC_DIR = Path(__file__).parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "codec: mark test as needing the OpenCV video codecs"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def make_frame():
    """Factory for solid-colour BGR frames, or grayscale when channels=1."""

    def _make(width: int = 320, height: int = 240, value: int = 128, channels: int = 3) -> np.ndarray:
        shape = (height, width) if channels == 1 else (height, width, channels)
        return np.full(shape, value, dtype=np.uint8)

    return _make


@pytest.fixture
def image_sequence(tmp_path) -> Path:
    """Five 32x24 PNG frames named frame_0001.png .. frame_0005.png.

    Frame i has red channel value i * 40 (RGB on disk, so BGR index 2 once read).
    """
    directory = tmp_path / "frames"
    directory.mkdir()
    for index in range(1, 6):
        pixels = np.zeros((24, 32, 3), dtype=np.uint8)
        pixels[:, :, 0] = index * 40
        Image.fromarray(pixels, "RGB").save(directory / f"frame_{index:04d}.png")
    return directory


@pytest.fixture
def sequence_pattern(image_sequence) -> str:
    return str(image_sequence / "frame_%04d.png")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
