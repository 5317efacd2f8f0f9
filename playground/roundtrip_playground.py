import logging
from pathlib import Path

import numpy as np

from videoport.core.logger import setup_logger
from videoport.core.settings import load_settings

# Find the project root to correctly locate config and data files
PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIGS_DIR = PROJECT_ROOT / "configs"
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"

settings = load_settings(CONFIGS_DIR / "videoport.yaml")
setup_logger(settings.logging, LOGS_DIR)

logger = logging.getLogger(__name__)

from videoport.core.capture import VideoCapture
from videoport.core.errors import VideoIOError
from videoport.core.properties import PropertyId
from videoport.core.writer import VideoWriter

WIDTH, HEIGHT, FPS, FRAMES = 320, 240, 30.0, 10


def make_frame(index: int) -> np.ndarray:
    """A moving white bar on black, so decoded frames are easy to eyeball."""
    frame = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    x = (index * 16) % WIDTH
    frame[:, x:x + 16] = 255
    return frame


def main():
    logger.info("========== Starting videoport round trip ==========")
    output_video = DATA_DIR / "output" / "roundtrip.avi"
    output_video.parent.mkdir(parents=True, exist_ok=True)

    try:
        with VideoWriter(output_video, "MJPG", FPS, (WIDTH, HEIGHT), settings=settings) as writer:
            for index in range(FRAMES):
                writer.write(make_frame(index))

        with VideoCapture(output_video, settings=settings) as cap:
            logger.info(
                f"Read back {cap.get(PropertyId.FRAME_COUNT):.0f} frames at "
                f"{cap.get(PropertyId.FRAME_WIDTH):.0f}x{cap.get(PropertyId.FRAME_HEIGHT):.0f}"
            )
            decoded = sum(1 for _ in cap)
            logger.info(f"Decoded {decoded} frames.")
    except VideoIOError as e:
        logger.critical(f"Round trip failed: {e}", exc_info=True)

    logger.info("========== videoport round trip finished ==========")


if __name__ == "__main__":
    main()
