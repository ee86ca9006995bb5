from __future__ import annotations

import logging
from typing import Callable

from depthcloud.core.calibration import CameraCalibration, UnsupportedCameraError, resolve
from depthcloud.render.backend import FrameUploadError, RenderBackend
from depthcloud.render.frames import FrameSource, StreamAcquisition
from depthcloud.render.geometry_cache import FrameGeometryCache
from depthcloud.view.orbit import OrbitViewController

logger = logging.getLogger(__name__)


class PointCloudRenderer:
    """
    One iteration per display refresh: if both streams have frames, upload them
    and draw one point per depth pixel; otherwise just clear.

    Errors never stop the loop. They are logged and passed to `on_error`.
    """

    def __init__(
        self,
        backend: RenderBackend,
        controller: OrbitViewController | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.backend = backend
        self.controller = controller if controller is not None else OrbitViewController()
        self.cache = FrameGeometryCache()
        self.calibration: CameraCalibration | None = None
        self.color_source: FrameSource | None = None
        self.depth_source: FrameSource | None = None
        self.frame_count = 0
        self._on_error = on_error
        self._acquisition: StreamAcquisition | None = None
        self._color_size: tuple[int, int] | None = None

    def _report(self, error: Exception) -> None:
        logger.error("%s: %s", type(error).__name__, error)
        if self._on_error is not None:
            self._on_error(error)

    def attach_sources(self, color: FrameSource, depth: FrameSource) -> None:
        self.color_source = color
        self.depth_source = depth

    def attach_calibration(self, identity: str) -> CameraCalibration | None:
        """Resolve and upload the calibration; unknown cameras render uncalibrated."""
        try:
            calib = resolve(identity)
        except UnsupportedCameraError as e:
            self._report(e)
            return None
        self.set_calibration(calib)
        return calib

    def set_calibration(self, calib: CameraCalibration) -> None:
        self.calibration = calib
        self.backend.upload_calibration(calib)

    def attach_acquisition(self, acquisition: StreamAcquisition) -> None:
        self._acquisition = acquisition

    def _poll_acquisition(self) -> None:
        acq = self._acquisition
        if acq is None:
            return
        error = acq.take_error()
        if error is not None:
            self._report(error)
            self._acquisition = None
            return
        if acq.ready:
            streams = acq.streams
            self._acquisition = None
            if streams is not None:
                self.attach_sources(streams.color, streams.depth)
                self.attach_calibration(streams.identity)

    def _streams_ready(self) -> bool:
        return (
            self.color_source is not None
            and self.depth_source is not None
            and self.color_source.ready
            and self.depth_source.ready
        )

    def render_frame(self) -> bool:
        """Run one iteration. Returns True if a draw call was issued."""
        self._poll_acquisition()
        if not self._streams_ready():
            self.backend.clear()
            return False
        # Both sources advance together; sizes come from the frames just taken.
        color_frame = self.color_source.latest()
        depth_frame = self.depth_source.latest()
        height, width = depth_frame.shape[:2]
        color_size = (int(color_frame.shape[1]), int(color_frame.shape[0]))

        rebuilt = self.cache.update(width, height)
        if rebuilt:
            self.backend.set_viewport(width, height)
            self.backend.upload_index_buffer(self.cache.indices)
        if rebuilt or color_size != self._color_size:
            self.backend.upload_texture_sizes((width, height), color_size)
            self._color_size = color_size
        self.backend.clear()

        self.backend.upload_view_projection(self.controller.view_projection(width, height))
        try:
            self.backend.upload_color_frame(color_frame)
            self.backend.upload_depth_frame(depth_frame)
        except FrameUploadError as e:
            self._report(e)
            return False

        self.backend.draw_points(self.cache.point_count)
        self.frame_count += 1
        return True
