from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from depthcloud.core.calibration import CameraCalibration
from depthcloud.core.distortion import distort, undistort


@dataclass(frozen=True)
class ProjectedPoint:
    position: np.ndarray  # (3,) depth-camera space, meters
    color_uv: np.ndarray  # (2,) distorted color-image pixel coordinates


def project_points(
    pixels: np.ndarray, raw_depth: np.ndarray, calib: CameraCalibration
) -> tuple[np.ndarray, np.ndarray]:
    """
    Deproject depth pixels to 3D and find where each point lands in the color image.

    Inputs:
    - `pixels`: (N,2) depth pixel indices (x, y)
    - `raw_depth`: (N,) normalized depth samples
    - `calib`: camera calibration

    Returns (positions (N,3) in depth-camera space, color_uv (N,2) color pixels).

    Steps, in this order:
      1. normalize the depth pixel by the depth intrinsics
      2. correct depth-sensor distortion
      3. scale the ideal ray (x', y', 1) by metric depth
      4. move the point into color-camera space
      5. pinhole-project, apply color-sensor distortion, then color intrinsics

    Zero depth is not filtered: it maps to the depth-space origin.
    """
    pixels = np.asarray(pixels, dtype=np.float32).reshape(-1, 2)
    raw_depth = np.asarray(raw_depth, dtype=np.float32).reshape(-1)
    if pixels.shape[0] != raw_depth.shape[0]:
        raise ValueError("pixels and raw_depth must have the same length")

    depth_f = np.asarray(calib.depth_focal_length, dtype=np.float32)
    depth_c = np.asarray(calib.depth_offset, dtype=np.float32)
    color_f = np.asarray(calib.color_focal_length, dtype=np.float32)
    color_c = np.asarray(calib.color_offset, dtype=np.float32)

    xy = (pixels - depth_c) / depth_f
    x, y = undistort(calib.depth_distortion, xy[:, 0], xy[:, 1])

    d = raw_depth * np.float32(calib.depth_scale)
    positions = np.stack([x * d, y * d, d], axis=-1)

    rotation = calib.rotation
    translation = calib.translation
    in_color = positions @ rotation.T + translation

    # A point on the color camera plane has no image; let it go non-finite.
    with np.errstate(divide="ignore", invalid="ignore"):
        cx = in_color[:, 0] / in_color[:, 2]
        cy = in_color[:, 1] / in_color[:, 2]
        cx, cy = distort(calib.color_distortion, cx, cy)
    color_uv = np.stack([cx, cy], axis=-1) * color_f + color_c
    return positions.astype(np.float32), color_uv.astype(np.float32)


def project(pixel: tuple[int, int], raw_depth: float, calib: CameraCalibration) -> ProjectedPoint:
    positions, color_uv = project_points(np.asarray([pixel]), np.asarray([raw_depth]), calib)
    return ProjectedPoint(position=positions[0], color_uv=color_uv[0])


def pixel_indices(width: int, height: int) -> np.ndarray:
    """
    (W*H, 2) float32 pixel indices, x-major: (0,0), (0,1), ..., (0,H-1), (1,0), ...
    """
    xx, yy = np.meshgrid(
        np.arange(int(width), dtype=np.float32),
        np.arange(int(height), dtype=np.float32),
        indexing="ij",
    )
    return np.stack([xx.reshape(-1), yy.reshape(-1)], axis=-1)


def project_depth_frame(
    depth: np.ndarray, calib: CameraCalibration, indices: np.ndarray | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """
    Project every pixel of an (H,W) depth frame, in `pixel_indices` order.
    """
    depth = np.asarray(depth, dtype=np.float32)
    if depth.ndim != 2:
        raise ValueError("depth frame must be (H,W)")
    h, w = depth.shape
    if indices is None:
        indices = pixel_indices(w, h)
    ij = indices.astype(np.int64)
    samples = depth[ij[:, 1], ij[:, 0]]
    return project_points(indices, samples, calib)
