import pytest

from videoport.core.backend import Backend
from videoport.core.capture import VideoCapture
from videoport.core.errors import EncodeFailed
from videoport.core.fourcc import pack, unpack
from videoport.core.properties import PropertyId
from videoport.core.settings import WriterSettings
from videoport.core.writer import VideoWriter

pytestmark = pytest.mark.codec

WIDTH, HEIGHT, FPS, FRAMES = 320, 240, 30.0, 10


@pytest.fixture
def mjpg_clip(tmp_path, make_frame):
    path = tmp_path / "clip.avi"
    with VideoWriter(path, pack("MJPG"), FPS, (WIDTH, HEIGHT)) as writer:
        for index in range(FRAMES):
            writer.write(make_frame(WIDTH, HEIGHT, value=index * 20))
    return path


def test_written_clip_reads_back(mjpg_clip):
    with VideoCapture(mjpg_clip) as cap:
        assert cap.backend_name == "opencv"
        assert abs(cap.get(PropertyId.FRAME_COUNT) - FRAMES) <= 1
        assert cap.get(PropertyId.FRAME_WIDTH) == WIDTH
        assert cap.get(PropertyId.FRAME_HEIGHT) == HEIGHT
        assert cap.get(PropertyId.FPS) == pytest.approx(FPS, abs=0.5)
        assert unpack(int(cap.get(PropertyId.FOURCC))) == "MJPG"

        frames = list(cap)
        assert abs(len(frames) - FRAMES) <= 1
        assert frames[0].shape == (HEIGHT, WIDTH, 3)


def test_rejected_frame_does_not_corrupt_clip(tmp_path, make_frame):
    path = tmp_path / "clip.avi"
    with VideoWriter(path, "MJPG", FPS, (WIDTH, HEIGHT)) as writer:
        for _ in range(FRAMES):
            writer.write(make_frame(WIDTH, HEIGHT))
            with pytest.raises(EncodeFailed):
                writer.write(make_frame(WIDTH // 2, HEIGHT // 2))
        assert writer.frames_written == FRAMES

    with VideoCapture(path) as cap:
        assert sum(1 for _ in cap) == FRAMES


def test_capture_seek_on_video(mjpg_clip):
    with VideoCapture(mjpg_clip) as cap:
        assert cap.set(PropertyId.POS_FRAMES, 5)
        assert cap.get(PropertyId.POS_FRAMES) == pytest.approx(5, abs=1)
        assert cap.read() is not None


@pytest.mark.parametrize(
    "prop", [PropertyId.EXPOSURE, PropertyId.GAIN, PropertyId.ZOOM, PropertyId.IRIS, PropertyId.FOCUS]
)
def test_camera_controls_are_unsupported_on_a_file(mjpg_clip, prop):
    with VideoCapture(mjpg_clip) as cap:
        assert cap.get(prop) is None


def test_start_position_reads_as_zero(mjpg_clip):
    with VideoCapture(mjpg_clip) as cap:
        assert cap.get(PropertyId.POS_FRAMES) == 0
        assert cap.get(PropertyId.POS_MSEC) == 0


def test_mjpeg_writer_properties(tmp_path, make_frame):
    path = tmp_path / "quality.avi"
    with VideoWriter(path, "MJPG", FPS, (WIDTH, HEIGHT), backend=Backend.OPENCV_MJPEG) as writer:
        assert writer.set(PropertyId.QUALITY, 80)
        assert writer.get(PropertyId.QUALITY) == pytest.approx(80)

        assert writer.set(PropertyId.FRAME_BYTES, 1) is False
        writer.write(make_frame(WIDTH, HEIGHT))
        assert writer.get(PropertyId.FRAME_BYTES) > 0

        assert writer.get(PropertyId.FRAME_WIDTH) is None
        assert writer.set(PropertyId.FRAME_WIDTH, 640) is False


def test_writer_settings_quality_reaches_opencv(tmp_path):
    settings = WriterSettings(backend=Backend.OPENCV_MJPEG, quality=70)
    with VideoWriter(tmp_path / "q.avi", "MJPG", FPS, (WIDTH, HEIGHT), settings=settings) as writer:
        assert writer.get(PropertyId.QUALITY) == pytest.approx(70)
