from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from depthcloud.core.distortion import (
    NO_DISTORTION,
    DistortionModel,
    DistortionModelMismatch,
    DistortionSpec,
    distortion_to_dict,
)

logger = logging.getLogger(__name__)

# Depth frames arrive as 16-bit samples normalized to [0, 1].
DEPTH_DENORMALIZATION = 65535


class UnsupportedCameraError(LookupError):
    def __init__(self, identity: str) -> None:
        super().__init__(f"unsupported camera: {identity!r}")
        self.identity = identity


def _pair(v: Any, name: str) -> tuple[float, float]:
    vals = tuple(float(x) for x in v)
    if len(vals) != 2:
        raise ValueError(f"{name} must have 2 components")
    return vals


@dataclass(frozen=True, eq=False)
class CameraCalibration:
    """
    Intrinsics of both sensors plus the depth->color extrinsic transform.

    Conventions:
    - `depth_scale` converts a normalized depth sample to meters and already
      includes the 16-bit denormalization.
    - `depth_to_color` is a row-major 4x4 rigid transform, X_color = R X_depth + t.
    - The depth sensor path corrects distortion (NONE or INVERSE_BROWN_CONRADY),
      the color path applies it (NONE or MODIFIED_BROWN_CONRADY).
    """

    depth_scale: float
    depth_focal_length: tuple[float, float]
    depth_offset: tuple[float, float]
    color_focal_length: tuple[float, float]
    color_offset: tuple[float, float]
    depth_to_color: np.ndarray = field(default_factory=lambda: np.eye(4, dtype=np.float32))
    depth_distortion: DistortionSpec = NO_DISTORTION
    color_distortion: DistortionSpec = NO_DISTORTION

    def __post_init__(self) -> None:
        depth_scale = float(self.depth_scale)
        if not (math.isfinite(depth_scale) and depth_scale > 0.0):
            raise ValueError("depth_scale must be > 0")
        for name in ("depth_focal_length", "depth_offset", "color_focal_length", "color_offset"):
            object.__setattr__(self, name, _pair(getattr(self, name), name))
        if min(self.depth_focal_length) <= 0.0 or min(self.color_focal_length) <= 0.0:
            raise ValueError("focal lengths must be > 0")

        m = np.asarray(self.depth_to_color, dtype=np.float32)
        if m.shape != (4, 4):
            raise ValueError("depth_to_color must be 4x4")
        if not np.all(np.isfinite(m)):
            raise ValueError("depth_to_color has non-finite values")
        if not np.array_equal(m[3], np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float32)):
            raise ValueError("depth_to_color last row must be [0, 0, 0, 1]")
        m = m.copy()
        m.setflags(write=False)

        if self.depth_distortion.model == DistortionModel.MODIFIED_BROWN_CONRADY:
            raise DistortionModelMismatch("depth sensor distortion must be NONE or INVERSE_BROWN_CONRADY")
        if self.color_distortion.model == DistortionModel.INVERSE_BROWN_CONRADY:
            raise DistortionModelMismatch("color sensor distortion must be NONE or MODIFIED_BROWN_CONRADY")

        object.__setattr__(self, "depth_scale", depth_scale)
        object.__setattr__(self, "depth_to_color", m)

    @property
    def rotation(self) -> np.ndarray:
        return self.depth_to_color[:3, :3]

    @property
    def translation(self) -> np.ndarray:
        return self.depth_to_color[:3, 3]


def _rigid(rotation_rows: list[float], translation: list[float]) -> np.ndarray:
    m = np.eye(4, dtype=np.float32)
    m[:3, :3] = np.asarray(rotation_rows, dtype=np.float32).reshape(3, 3)
    m[:3, 3] = np.asarray(translation, dtype=np.float32)
    return m


SR300_CALIBRATION = CameraCalibration(
    depth_scale=0.0001249866472790017724 * DEPTH_DENORMALIZATION,
    depth_focal_length=(475.900726318359375, 475.900726318359375),
    depth_offset=(310.743988037109375, 245.1811676025390625),
    color_focal_length=(617.65087890625, 617.65093994140625),
    color_offset=(312.073974609375, 241.969329833984375),
    depth_to_color=_rigid(
        [
            0.99998325109481811523, -0.0021383403800427913666, -0.0053776423446834087372,
            0.002231199527159333229, 0.99984747171401977539, 0.017321307212114334106,
            0.00533978315070271492, -0.017333013936877250671, 0.99983555078506469727,
        ],
        [0.025699997320771217346, -0.00078462663805112242699, 0.0035593442153185606003],
    ),
    depth_distortion=DistortionSpec(
        DistortionModel.INVERSE_BROWN_CONRADY,
        (
            0.14655706286430358887,
            0.078352205455303192139,
            0.0026113723870366811752,
            0.0029218809213489294052,
            0.066788062453269958496,
        ),
    ),
    color_distortion=NO_DISTORTION,
)

R200_CALIBRATION = CameraCalibration(
    depth_scale=0.001 * DEPTH_DENORMALIZATION,
    depth_focal_length=(447.320953369140625, 447.320953369140625),
    depth_offset=(233.3975067138671875, 179.2618865966796875),
    color_focal_length=(627.9630126953125, 634.02410888671875),
    color_offset=(311.841033935546875, 229.7513275146484375),
    depth_to_color=_rigid(
        [
            0.99997097253799438477, 0.0075976606272161006927, -0.0010095685720443725586,
            -0.0075956135988235473633, 0.99996906518936157227, 0.0020152097567915916443,
            0.0010248473845422267914, -0.0020074830390512943268, 0.99999743700027465820,
        ],
        [-0.058907422423362731934, 0.00022722588619217276573, -0.00020027288701385259628],
    ),
    depth_distortion=NO_DISTORTION,
    color_distortion=DistortionSpec(
        DistortionModel.MODIFIED_BROWN_CONRADY,
        (
            -0.078357703983783721924,
            0.05764100700616836548,
            -0.0005085901939310133457,
            -0.0010233027860522270203,
            -0.0095624532550573348999,
        ),
    ),
)


class CameraModel(Enum):
    """Supported depth-camera families, each with its factory calibration."""

    SR300 = "SR300"
    R200 = "R200"

    @property
    def calibration(self) -> CameraCalibration:
        return _PROFILES[self]

    @classmethod
    def from_identity(cls, identity: str) -> "CameraModel":
        """
        Match a device/track label, e.g. "Intel(R) RealSense(TM) 3D Camera SR300 Depth".
        """
        label = str(identity)
        if "R200" in label:
            return cls.R200
        if "SR300" in label or "Camera S" in label:
            return cls.SR300
        raise UnsupportedCameraError(label)


_PROFILES = {
    CameraModel.SR300: SR300_CALIBRATION,
    CameraModel.R200: R200_CALIBRATION,
}


def resolve(identity: str) -> CameraCalibration:
    model = CameraModel.from_identity(identity)
    logger.info("Resolved camera %r as %s", identity, model.name)
    return model.calibration


def calibration_to_dict(calib: CameraCalibration) -> dict[str, Any]:
    return {
        "schema_version": "depthcloud.calibration.v0",
        "depth_scale": calib.depth_scale,
        "depth": {
            "focal_length": list(calib.depth_focal_length),
            "offset": list(calib.depth_offset),
            "distortion": distortion_to_dict(calib.depth_distortion),
        },
        "color": {
            "focal_length": list(calib.color_focal_length),
            "offset": list(calib.color_offset),
            "distortion": distortion_to_dict(calib.color_distortion),
        },
        "depth_to_color": np.asarray(calib.depth_to_color, dtype=np.float64).tolist(),
    }
