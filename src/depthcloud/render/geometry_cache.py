from __future__ import annotations

import logging

import numpy as np

from depthcloud.core.unproject import pixel_indices

logger = logging.getLogger(__name__)


class FrameGeometryCache:
    """
    Per-resolution index buffer (one (x, y) pair per depth pixel) and viewport.

    Rebuilt only when the depth stream resolution changes.
    """

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self.indices: np.ndarray = np.zeros((0, 2), dtype=np.float32)

    @property
    def valid(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def point_count(self) -> int:
        return self.width * self.height

    @property
    def viewport(self) -> tuple[int, int, int, int]:
        return (0, 0, self.width, self.height)

    def update(self, width: int, height: int) -> bool:
        """Returns True when the cache was rebuilt."""
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid depth resolution {width}x{height}")
        if (width, height) == (self.width, self.height):
            return False
        logger.debug("Rebuilding frame geometry for %dx%d", width, height)
        self.width = width
        self.height = height
        self.indices = pixel_indices(width, height)
        return True
