from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from depthcloud.core.transforms import look_at, perspective, rotate_x, rotate_y, translate

YAW_LIMIT = 120.0
PITCH_LIMIT = 80.0
PIVOT_DEPTH = 0.5
FOV_Y_DEG = 60.0
Z_NEAR = 0.1
Z_FAR = 20.0


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


@dataclass
class ViewState:
    """Orbit angles in degrees plus the pointer-drag bookkeeping."""

    yaw: float = 0.0
    pitch: float = 0.0
    dragging: bool = False
    last_x: float = 0.0
    last_y: float = 0.0


class OrbitViewController:
    """
    Rotates the point cloud about a pivot in front of the camera from pointer drags.

    Idle -> Dragging on pointer-down, back to Idle on pointer-up. Moves only
    count while dragging; yaw and pitch stay within +-YAW_LIMIT / +-PITCH_LIMIT.
    """

    def __init__(self, state: ViewState | None = None) -> None:
        self.state = state if state is not None else ViewState()

    @property
    def dragging(self) -> bool:
        return self.state.dragging

    def pointer_down(self, x: float, y: float) -> None:
        self.state.dragging = True
        self.state.last_x = float(x)
        self.state.last_y = float(y)

    def pointer_up(self, x: float, y: float) -> None:
        self.state.dragging = False
        self.state.last_x = float(x)
        self.state.last_y = float(y)

    def pointer_move(self, x: float, y: float) -> None:
        s = self.state
        if not s.dragging:
            return
        dx = float(x) - s.last_x
        dy = float(y) - s.last_y
        s.yaw = clamp(s.yaw - dx, -YAW_LIMIT, YAW_LIMIT)
        s.pitch = clamp(s.pitch + dy, -PITCH_LIMIT, PITCH_LIMIT)
        s.last_x = float(x)
        s.last_y = float(y)

    def model_matrix(self) -> np.ndarray:
        return (
            translate(0.0, 0.0, PIVOT_DEPTH)
            @ rotate_x(math.radians(self.state.pitch))
            @ rotate_y(math.radians(self.state.yaw))
            @ translate(0.0, 0.0, -PIVOT_DEPTH)
        )

    @staticmethod
    def view_matrix() -> np.ndarray:
        # Depth-camera convention: +Z forward, +Y down.
        return look_at((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, -1.0, 0.0))

    @staticmethod
    def projection_matrix(width: int, height: int) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise ValueError(f"viewport must be positive, got {width}x{height}")
        return perspective(math.radians(FOV_Y_DEG), float(width) / float(height), Z_NEAR, Z_FAR)

    def view_projection(self, width: int, height: int) -> np.ndarray:
        """projection @ view @ model for a `width` x `height` viewport (row-major)."""
        projection = self.projection_matrix(width, height)
        return (projection @ (self.view_matrix() @ self.model_matrix())).astype(np.float32)
