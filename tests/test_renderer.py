from __future__ import annotations

from pathlib import Path

import numpy as np

from depthcloud.core.calibration import CameraCalibration, SR300_CALIBRATION, UnsupportedCameraError
from depthcloud.render.backend import FrameUploadError, SoftwareBackend
from depthcloud.render.frames import SequenceFrameSource, StillFrameSource, StreamAcquisition, StreamSet
from depthcloud.render.renderer import PointCloudRenderer
from depthcloud.view.orbit import OrbitViewController, ViewState

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def _pinhole_calibration() -> CameraCalibration:
    return CameraCalibration(
        depth_scale=1.0,
        depth_focal_length=(50.0, 50.0),
        depth_offset=(32.0, 24.0),
        color_focal_length=(50.0, 50.0),
        color_offset=(32.0, 24.0),
    )


def _frames(w: int = 64, h: int = 48, depth: float = 1.0):
    d = np.full((h, w), depth, dtype=np.float32)
    c = np.zeros((h, w, 4), dtype=np.uint8)
    c[:, : w // 2] = RED
    c[:, w // 2 :] = BLUE
    return StillFrameSource(c), StillFrameSource(d)


class RecordingBackend:
    def __init__(self, fail_color_uploads: int = 0) -> None:
        self.calls: list[str] = []
        self.fail_color_uploads = fail_color_uploads
        self.draw_counts: list[int] = []
        self.viewports: list[tuple[int, int]] = []
        self.texture_sizes: list[tuple[tuple[int, int], tuple[int, int]]] = []
        self.color_frame = None
        self.depth_frame = None
        self.drawn_frames: list[tuple[np.ndarray, np.ndarray]] = []

    def set_viewport(self, width, height):
        self.calls.append("set_viewport")
        self.viewports.append((width, height))

    def clear(self):
        self.calls.append("clear")

    def upload_calibration(self, calib):
        self.calls.append("upload_calibration")

    def upload_texture_sizes(self, depth_size, color_size):
        self.calls.append("upload_texture_sizes")
        self.texture_sizes.append((depth_size, color_size))

    def upload_index_buffer(self, indices):
        self.calls.append("upload_index_buffer")

    def upload_view_projection(self, mvp):
        self.calls.append("upload_view_projection")

    def upload_color_frame(self, frame):
        if self.fail_color_uploads > 0:
            self.fail_color_uploads -= 1
            raise FrameUploadError("texture upload failed")
        self.calls.append("upload_color_frame")
        self.color_frame = frame

    def upload_depth_frame(self, frame):
        self.calls.append("upload_depth_frame")
        self.depth_frame = frame

    def draw_points(self, count):
        self.calls.append("draw_points")
        self.draw_counts.append(count)
        self.drawn_frames.append((self.color_frame, self.depth_frame))


class ResizableSource:
    def __init__(self, w: int, h: int) -> None:
        self.frame = np.zeros((h, w), dtype=np.float32)
        self.ready = True

    @property
    def width(self) -> int:
        return self.frame.shape[1]

    @property
    def height(self) -> int:
        return self.frame.shape[0]

    def latest(self):
        return self.frame


def test_no_sources_is_a_cleared_no_op():
    backend = RecordingBackend()
    r = PointCloudRenderer(backend)
    assert r.render_frame() is False
    assert backend.calls == ["clear"]
    assert r.frame_count == 0


def test_waits_until_both_streams_ready():
    backend = RecordingBackend()
    r = PointCloudRenderer(backend)
    color = ResizableSource(4, 3)
    depth = ResizableSource(4, 3)
    depth.ready = False
    r.attach_sources(color, depth)
    assert r.render_frame() is False
    depth.ready = True
    assert r.render_frame() is True
    assert backend.draw_counts == [12]


def test_geometry_rebuilt_only_on_resolution_change():
    backend = RecordingBackend()
    r = PointCloudRenderer(backend)
    depth = ResizableSource(8, 6)
    r.attach_sources(ResizableSource(8, 6), depth)
    for _ in range(3):
        assert r.render_frame()
    assert backend.calls.count("upload_index_buffer") == 1
    assert backend.calls.count("upload_view_projection") == 3

    depth.frame = np.zeros((3, 5), dtype=np.float32)
    assert r.render_frame()
    assert backend.calls.count("upload_index_buffer") == 2
    assert backend.draw_counts[-1] == 15
    assert r.cache.viewport == (0, 0, 5, 3)


def test_upload_failure_skips_one_frame():
    errors = []
    backend = RecordingBackend(fail_color_uploads=1)
    r = PointCloudRenderer(backend, on_error=errors.append)
    r.attach_sources(ResizableSource(4, 4), ResizableSource(4, 4))
    assert r.render_frame() is False
    assert len(errors) == 1 and isinstance(errors[0], FrameUploadError)
    assert "draw_points" not in backend.calls
    assert r.render_frame() is True
    assert r.frame_count == 1


def _sequence(frames: list[np.ndarray]) -> SequenceFrameSource:
    paths = [Path(f"frame_{i}.npy") for i in range(len(frames))]
    lookup = dict(zip(paths, frames))
    return SequenceFrameSource(paths, lookup.__getitem__, loop=True)


def test_upload_failure_keeps_color_and_depth_paired() -> None:
    colors = [np.full((2, 2, 4), n, dtype=np.uint8) for n in (1, 2, 3)]
    depths = [np.full((2, 2), n, dtype=np.float32) for n in (1, 2, 3)]
    backend = RecordingBackend(fail_color_uploads=1)
    r = PointCloudRenderer(backend, on_error=lambda e: None)
    r.attach_sources(_sequence(colors), _sequence(depths))

    assert r.render_frame() is False
    for _ in range(3):
        assert r.render_frame() is True

    pairs = [(int(c[0, 0, 0]), int(d[0, 0])) for c, d in backend.drawn_frames]
    assert pairs == [(2, 2), (3, 3), (1, 1)]


def test_geometry_follows_the_frame_being_uploaded() -> None:
    depths = [np.zeros((2, 2), dtype=np.float32), np.zeros((3, 5), dtype=np.float32)]
    colors = [np.zeros((2, 2, 4), dtype=np.uint8), np.zeros((6, 10, 4), dtype=np.uint8)]
    backend = RecordingBackend()
    r = PointCloudRenderer(backend)
    r.attach_sources(_sequence(colors), _sequence(depths))

    assert r.render_frame()
    assert r.cache.viewport == (0, 0, 2, 2)
    assert backend.draw_counts[-1] == 4

    assert r.render_frame()
    assert backend.depth_frame.shape == (3, 5)
    assert (r.cache.width, r.cache.height) == (5, 3)
    assert r.cache.viewport == (0, 0, 5, 3)
    assert backend.viewports == [(2, 2), (5, 3)]
    assert backend.texture_sizes[-1] == ((5, 3), (10, 6))
    assert backend.draw_counts[-1] == 15


def test_unknown_camera_reports_and_keeps_rendering():
    errors = []
    backend = SoftwareBackend()
    r = PointCloudRenderer(backend, on_error=errors.append)
    assert r.attach_calibration("XYZ999") is None
    assert len(errors) == 1 and isinstance(errors[0], UnsupportedCameraError)
    r.attach_sources(*_frames())
    assert r.render_frame() is True
    # Uncalibrated: the draw is issued but nothing lands on screen.
    assert backend.draw_calls == 1
    assert not backend.image.any()


def test_known_camera_uploads_calibration():
    backend = RecordingBackend()
    r = PointCloudRenderer(backend)
    assert r.attach_calibration("SR300") is SR300_CALIBRATION
    assert r.calibration is SR300_CALIBRATION
    assert backend.calls == ["upload_calibration"]


def test_software_render_of_plane_is_upright_and_colored():
    backend = SoftwareBackend()
    r = PointCloudRenderer(backend)
    r.set_calibration(_pinhole_calibration())
    r.attach_sources(*_frames())
    assert r.render_frame()
    img = backend.image
    assert img.shape == (48, 64, 3)
    assert tuple(img[24, 15]) == (255, 0, 0)
    assert tuple(img[24, 48]) == (0, 0, 255)
    assert tuple(img[0, 0]) == (0, 0, 0)
    covered = np.any(img != 0, axis=-1).sum()
    assert covered > 1500
    assert backend.points_drawn == 64 * 48


def test_orbit_changes_the_rendered_image():
    images = []
    for yaw in (0.0, 40.0):
        backend = SoftwareBackend()
        r = PointCloudRenderer(backend, OrbitViewController(ViewState(yaw=yaw)))
        r.set_calibration(_pinhole_calibration())
        r.attach_sources(*_frames())
        r.render_frame()
        images.append(backend.image.copy())
    assert not np.array_equal(images[0], images[1])


def test_clear_color_fills_background():
    backend = SoftwareBackend(clear_color=(10, 20, 30))
    r = PointCloudRenderer(backend)
    r.set_calibration(_pinhole_calibration())
    r.attach_sources(*_frames())
    r.render_frame()
    assert tuple(backend.image[0, 0]) == (10, 20, 30)


def test_acquisition_attaches_streams_and_calibration():
    color, depth = _frames()
    acq = StreamAcquisition(lambda: StreamSet(color=color, depth=depth, identity="SR300"))
    backend = SoftwareBackend()
    r = PointCloudRenderer(backend)
    r.attach_acquisition(acq)
    acq.start()
    assert acq.wait(5.0)
    assert r.render_frame() is True
    assert r.calibration is SR300_CALIBRATION
    assert r.color_source is color


def test_acquisition_failure_reported_once():
    errors = []

    def opener():
        raise PermissionError("camera access denied")

    acq = StreamAcquisition(opener)
    r = PointCloudRenderer(SoftwareBackend(), on_error=errors.append)
    r.attach_acquisition(acq)
    acq.start()
    assert acq.wait(5.0)
    for _ in range(3):
        assert r.render_frame() is False
    assert len(errors) == 1
    assert isinstance(errors[0], PermissionError)
