from depthcloud.render.backend import FrameUploadError, RenderBackend, SoftwareBackend
from depthcloud.render.frames import SequenceFrameSource, StillFrameSource, StreamAcquisition, StreamSet
from depthcloud.render.geometry_cache import FrameGeometryCache
from depthcloud.render.renderer import PointCloudRenderer

__all__ = [
    "FrameUploadError",
    "RenderBackend",
    "SoftwareBackend",
    "StillFrameSource",
    "SequenceFrameSource",
    "StreamAcquisition",
    "StreamSet",
    "FrameGeometryCache",
    "PointCloudRenderer",
]
