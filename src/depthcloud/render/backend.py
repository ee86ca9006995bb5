from __future__ import annotations

from typing import Protocol

import numpy as np

from depthcloud.core.calibration import CameraCalibration
from depthcloud.core.transforms import identity, transform_points
from depthcloud.core.unproject import project_depth_frame


class FrameUploadError(RuntimeError):
    pass


class RenderBackend(Protocol):
    """
    What the renderer needs from a GPU: uniforms, one index buffer, two
    textures and a point draw call.
    """

    def set_viewport(self, width: int, height: int) -> None: ...

    def clear(self) -> None: ...

    def upload_calibration(self, calib: CameraCalibration) -> None: ...

    def upload_texture_sizes(self, depth_size: tuple[int, int], color_size: tuple[int, int]) -> None: ...

    def upload_index_buffer(self, indices: np.ndarray) -> None: ...

    def upload_view_projection(self, mvp: np.ndarray) -> None: ...

    def upload_color_frame(self, frame: np.ndarray) -> None: ...

    def upload_depth_frame(self, frame: np.ndarray) -> None: ...

    def draw_points(self, count: int) -> None: ...


class SoftwareBackend:
    """
    CPU point rasterizer with the same inputs as the GPU path.

    Per point it runs the deprojection, transforms by the view-projection
    matrix, clips to the view volume and samples the color texture
    (nearest, clamp-to-edge). Overlapping points resolve far-to-near.
    The result is `image`, (H,W,3) uint8 RGB.
    """

    def __init__(self, clear_color: tuple[int, int, int] = (0, 0, 0)) -> None:
        self.clear_color = np.asarray(clear_color, dtype=np.uint8).reshape(3)
        self.image = np.zeros((1, 1, 3), dtype=np.uint8)
        self.draw_calls = 0
        self.points_drawn = 0
        self._calibration: CameraCalibration | None = None
        self._depth_size = np.ones(2, dtype=np.float32)
        self._color_size = np.ones(2, dtype=np.float32)
        self._indices = np.zeros((0, 2), dtype=np.float32)
        self._mvp = identity()
        self._color: np.ndarray | None = None
        self._depth: np.ndarray | None = None

    def set_viewport(self, width: int, height: int) -> None:
        self.image = np.zeros((int(height), int(width), 3), dtype=np.uint8)
        self.clear()

    def clear(self) -> None:
        self.image[...] = self.clear_color

    def upload_calibration(self, calib: CameraCalibration) -> None:
        self._calibration = calib

    def upload_texture_sizes(self, depth_size: tuple[int, int], color_size: tuple[int, int]) -> None:
        self._depth_size = np.asarray(depth_size, dtype=np.float32)
        self._color_size = np.asarray(color_size, dtype=np.float32)

    def upload_index_buffer(self, indices: np.ndarray) -> None:
        self._indices = np.asarray(indices, dtype=np.float32).reshape(-1, 2)

    def upload_view_projection(self, mvp: np.ndarray) -> None:
        self._mvp = np.asarray(mvp, dtype=np.float32).reshape(4, 4)

    def upload_color_frame(self, frame: np.ndarray) -> None:
        frame = np.asarray(frame)
        if frame.ndim != 3 or frame.shape[2] not in (3, 4) or frame.dtype != np.uint8:
            raise FrameUploadError(f"color frame must be (H,W,3|4) uint8, got {frame.shape} {frame.dtype}")
        self._color = frame[:, :, :3]

    def upload_depth_frame(self, frame: np.ndarray) -> None:
        frame = np.asarray(frame)
        if frame.ndim != 2 or not np.issubdtype(frame.dtype, np.floating):
            raise FrameUploadError(f"depth frame must be (H,W) float, got {frame.shape} {frame.dtype}")
        self._depth = frame.astype(np.float32, copy=False)

    def draw_points(self, count: int) -> None:
        self.draw_calls += 1
        if self._calibration is None or self._color is None or self._depth is None:
            return
        indices = self._indices[: int(count)]
        if indices.shape[0] == 0:
            return

        dh, dw = self._depth.shape
        indices = np.clip(indices, 0, [dw - 1, dh - 1]).astype(np.float32)
        positions, color_uv = project_depth_frame(self._depth, self._calibration, indices)

        clip = transform_points(self._mvp, positions)
        w = clip[:, 3]
        with np.errstate(divide="ignore", invalid="ignore"):
            ndc = clip[:, :3] / w[:, None]
        keep = (w > 0) & np.all(np.isfinite(ndc), axis=1) & np.all(np.abs(ndc) <= 1.0, axis=1)
        if not np.any(keep):
            return
        ndc = ndc[keep]
        color_uv = color_uv[keep]

        h, wv = self.image.shape[:2]
        cols = np.clip(np.floor((ndc[:, 0] + 1.0) * 0.5 * wv), 0, wv - 1).astype(np.int64)
        rows = np.clip(np.floor((1.0 - ndc[:, 1]) * 0.5 * h), 0, h - 1).astype(np.int64)

        ch, cw = self._color.shape[:2]
        tex = np.nan_to_num(color_uv / self._color_size, nan=0.0, posinf=1.0, neginf=0.0)
        tu = np.clip(np.floor(tex[:, 0] * cw), 0, cw - 1).astype(np.int64)
        tv = np.clip(np.floor(tex[:, 1] * ch), 0, ch - 1).astype(np.int64)

        order = np.argsort(-ndc[:, 2], kind="stable")
        self.image[rows[order], cols[order]] = self._color[tv[order], tu[order]]
        self.points_drawn += int(order.shape[0])
