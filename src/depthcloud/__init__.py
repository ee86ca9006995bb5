from depthcloud.core.calibration import CameraCalibration, CameraModel, UnsupportedCameraError, resolve
from depthcloud.core.distortion import DistortionModel, DistortionModelMismatch, DistortionSpec, distort, undistort
from depthcloud.core.unproject import ProjectedPoint, project, project_points
from depthcloud.render.renderer import PointCloudRenderer
from depthcloud.view.orbit import OrbitViewController, ViewState

__all__ = [
    "CameraCalibration",
    "CameraModel",
    "UnsupportedCameraError",
    "resolve",
    "DistortionModel",
    "DistortionModelMismatch",
    "DistortionSpec",
    "distort",
    "undistort",
    "ProjectedPoint",
    "project",
    "project_points",
    "OrbitViewController",
    "ViewState",
    "PointCloudRenderer",
]
