import logging
import sys

import cv2

from videoport.core.logger import setup_logger

setup_logger({"level": "INFO"})

logger = logging.getLogger(__name__)

from videoport.core.capture import VideoCapture
from videoport.core.errors import OpenFailed
from videoport.core.properties import PropertyId

WINDOW = "videoport preview"


def main(device_index: int = 0):
    """Shows the live feed of a camera until a key is pressed."""
    try:
        cap = VideoCapture(device_index)
    except OpenFailed as e:
        logger.critical(f"Cannot open camera {device_index}: {e}")
        return

    with cap:
        cap.set(PropertyId.BUFFER_SIZE, 1)
        logger.info(
            f"Camera {device_index}: {cap.get(PropertyId.FRAME_WIDTH)}x{cap.get(PropertyId.FRAME_HEIGHT)} "
            f"@ {cap.get(PropertyId.FPS)} fps"
        )
        cv2.namedWindow(WINDOW, cv2.WINDOW_AUTOSIZE)
        for frame in cap:
            cv2.imshow(WINDOW, frame)
            if cv2.waitKey(30) >= 0:
                break
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 0)
