import numpy as np
import pytest

from videoport.core.backend import Backend, HandleState
from videoport.core.capture import VideoCapture
from videoport.core.errors import ClosedHandle, EncodeFailed, OpenFailed
from videoport.core.fourcc import InvalidLength, pack
from videoport.core.properties import PropertyId
from videoport.core.settings import WriterSettings
from videoport.core.writer import VideoWriter


@pytest.fixture
def png_writer(tmp_path):
    writer = VideoWriter(str(tmp_path / "out_%03d.png"), "PNG ", 10.0, (32, 24), backend=Backend.PILLOW)
    yield writer
    writer.close()


class TestOpen:

    def test_negotiated_parameters_are_exposed(self, png_writer):
        assert png_writer.is_opened()
        assert png_writer.codec == pack("PNG ")
        assert png_writer.codec_name == "PNG "
        assert png_writer.fps == 10.0
        assert png_writer.frame_size == (32, 24)
        assert png_writer.is_color is True
        assert png_writer.backend_name == "pillow"

    def test_missing_output_directory_fails(self, tmp_path):
        writer = VideoWriter()
        with pytest.raises(OpenFailed):
            writer.open(tmp_path / "nope" / "out.avi", "MJPG", 30.0, (320, 240))
        assert writer.is_opened() is False
        assert writer.state is HandleState.UNOPENED

    @pytest.mark.parametrize("fps", [0, -5.0])
    def test_non_positive_fps_fails(self, tmp_path, fps):
        with pytest.raises(OpenFailed):
            VideoWriter(tmp_path / "out.avi", "MJPG", fps, (320, 240))

    @pytest.mark.parametrize("size", [(0, 240), (320, -1), (320,)])
    def test_invalid_frame_size_fails(self, tmp_path, size):
        with pytest.raises(OpenFailed):
            VideoWriter(tmp_path / "out.avi", "MJPG", 30.0, size)

    def test_malformed_codec_string(self, tmp_path):
        with pytest.raises(InvalidLength):
            VideoWriter(tmp_path / "out.avi", "MJPEG", 30.0, (320, 240))

    def test_pillow_rejects_non_pattern_path(self, tmp_path):
        with pytest.raises(OpenFailed):
            VideoWriter(tmp_path / "out.png", "PNG ", 10.0, (32, 24), backend=Backend.PILLOW)

    def test_pattern_with_stray_percent_is_rejected(self, tmp_path):
        with pytest.raises(OpenFailed):
            VideoWriter(str(tmp_path / "100%_%03d.png"), "PNG ", 10.0, (32, 24), backend=Backend.PILLOW)
        assert not list(tmp_path.iterdir())

    def test_partial_construction_arguments_fail(self, tmp_path):
        with pytest.raises(OpenFailed):
            VideoWriter(tmp_path / "out.avi", "MJPG")


class TestWrite:

    def test_frames_are_written_in_order(self, tmp_path, png_writer, make_frame):
        for value in (10, 20, 30):
            png_writer.write(make_frame(32, 24, value))
        png_writer.close()

        assert png_writer.frames_written == 3
        assert sorted(p.name for p in tmp_path.glob("out_*.png")) == ["out_000.png", "out_001.png", "out_002.png"]
        with VideoCapture(tmp_path / "out_%03d.png", backend=Backend.PILLOW) as cap:
            assert [int(f[0, 0, 0]) for f in cap] == [10, 20, 30]

    def test_wrong_size_is_rejected_without_touching_output(self, tmp_path, png_writer, make_frame):
        png_writer.write(make_frame(32, 24, 10))
        before = (tmp_path / "out_000.png").read_bytes()

        with pytest.raises(EncodeFailed):
            png_writer.write(make_frame(64, 48, 99))

        assert (tmp_path / "out_000.png").read_bytes() == before
        assert not (tmp_path / "out_001.png").exists()
        assert png_writer.frames_written == 1

        ## the handle is still usable
        png_writer.write(make_frame(32, 24, 20))
        assert png_writer.frames_written == 2

    def test_color_mismatch_is_rejected(self, png_writer, make_frame):
        with pytest.raises(EncodeFailed):
            png_writer.write(make_frame(32, 24, channels=1))
        with pytest.raises(EncodeFailed):
            png_writer.write(make_frame(32, 24, channels=4))

    def test_wrong_dtype_is_rejected(self, png_writer):
        with pytest.raises(EncodeFailed):
            png_writer.write(np.zeros((24, 32, 3), dtype=np.float32))
        with pytest.raises(EncodeFailed):
            png_writer.write([[0, 0, 0]])

    def test_grayscale_writer(self, tmp_path, make_frame):
        pattern = str(tmp_path / "gray_%02d.png")
        with VideoWriter(pattern, "PNG ", 5.0, (16, 8), is_color=False, backend=Backend.PILLOW) as writer:
            writer.write(make_frame(16, 8, 77, channels=1))
            with pytest.raises(EncodeFailed):
                writer.write(make_frame(16, 8, 77))

        with VideoCapture(pattern, backend=Backend.PILLOW) as cap:
            frame = cap.read()
            assert frame.shape == (8, 16)
            assert int(frame[0, 0]) == 77


class TestProperties:

    def test_quality_round_trip(self, png_writer):
        assert png_writer.set(PropertyId.QUALITY, 80)
        assert png_writer.get(PropertyId.QUALITY) == 80

    def test_quality_out_of_range_is_rejected(self, png_writer):
        assert png_writer.set(PropertyId.QUALITY, 150) is False
        assert png_writer.get(PropertyId.QUALITY) == 95

    def test_frame_bytes_is_read_only(self, png_writer, make_frame):
        png_writer.write(make_frame(32, 24))
        assert png_writer.get(PropertyId.FRAME_BYTES) > 0
        assert png_writer.set(PropertyId.FRAME_BYTES, 1) is False

    def test_capture_property_is_not_a_writer_property(self, png_writer):
        assert png_writer.get(PropertyId.FRAME_WIDTH) is None
        assert png_writer.set(PropertyId.FRAME_WIDTH, 640) is False

    def test_settings_quality_is_applied(self, tmp_path):
        settings = WriterSettings(backend=Backend.PILLOW, quality=60)
        with VideoWriter(str(tmp_path / "q_%d.jpg"), "MJPG", 10.0, (32, 24), settings=settings) as writer:
            assert writer.get(PropertyId.QUALITY) == 60


class TestClose:

    def test_write_after_close_fails(self, png_writer, make_frame):
        png_writer.close()
        with pytest.raises(ClosedHandle):
            png_writer.write(make_frame(32, 24))
        with pytest.raises(ClosedHandle):
            png_writer.get(PropertyId.QUALITY)
        with pytest.raises(ClosedHandle):
            png_writer.set(PropertyId.QUALITY, 50)

    def test_double_close_is_noop(self, png_writer):
        png_writer.close()
        png_writer.close()
        assert png_writer.state is HandleState.CLOSED

    def test_unopened_writer_rejects_writes(self, make_frame):
        with pytest.raises(ClosedHandle):
            VideoWriter().write(make_frame())
