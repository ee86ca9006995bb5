from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

import numpy as np

from depthcloud.config import ViewerConfig
from depthcloud.core.calibration import resolve
from depthcloud.core.image_io import list_frames, load_color_frame, load_depth_frame, save_rgb_u8
from depthcloud.render.backend import SoftwareBackend
from depthcloud.render.frames import FrameSource, SequenceFrameSource, StillFrameSource, StreamAcquisition, StreamSet
from depthcloud.render.renderer import PointCloudRenderer
from depthcloud.view.orbit import PITCH_LIMIT, YAW_LIMIT, OrbitViewController, ViewState, clamp

logger = logging.getLogger(__name__)


def open_source(path: Path, loader) -> FrameSource:
    frames = list_frames(path)
    if len(frames) == 1:
        return StillFrameSource(loader(frames[0]))
    return SequenceFrameSource(frames, loader, loop=True)


def open_file_streams(camera: str, depth: Path, color: Path) -> StreamSet:
    return StreamSet(
        color=open_source(color, load_color_frame),
        depth=open_source(depth, load_depth_frame),
        identity=camera,
    )


def render_snapshot(
    *,
    camera: str,
    depth: Path,
    color: Path,
    out: Path,
    yaw: float = 0.0,
    pitch: float = 0.0,
    clear_color: tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """
    Render one frame headlessly and write it to `out` (PNG). Returns the image.
    """
    calib = resolve(camera)
    streams = open_file_streams(camera, depth, color)
    state = ViewState(yaw=clamp(float(yaw), -YAW_LIMIT, YAW_LIMIT), pitch=clamp(float(pitch), -PITCH_LIMIT, PITCH_LIMIT))
    backend = SoftwareBackend(clear_color=clear_color)
    renderer = PointCloudRenderer(backend, OrbitViewController(state))
    renderer.attach_sources(streams.color, streams.depth)
    renderer.set_calibration(calib)
    renderer.render_frame()
    save_rgb_u8(out, backend.image)
    return backend.image


def route_mouse_event(cv2, controller: OrbitViewController, event: int, x: int, y: int) -> None:
    if event == cv2.EVENT_LBUTTONDOWN:
        controller.pointer_down(x, y)
    elif event == cv2.EVENT_LBUTTONUP:
        controller.pointer_up(x, y)
    elif event == cv2.EVENT_MOUSEMOVE:
        controller.pointer_move(x, y)


def run_viewer(cfg: ViewerConfig, snapshot_path: Path = Path("depthcloud_snapshot.png"), max_frames: int = 0) -> int:
    """
    Interactive OpenCV window. Left-drag orbits, `s` saves a snapshot, `q`/Esc quits.
    """
    import cv2  # type: ignore

    if cfg.depth is None or cfg.color is None:
        raise ValueError("both depth and color frame paths are required")

    backend = SoftwareBackend(clear_color=cfg.clear_color)
    controller = OrbitViewController()
    renderer = PointCloudRenderer(backend, controller)
    acquisition = StreamAcquisition(partial(open_file_streams, cfg.camera, cfg.depth, cfg.color))
    renderer.attach_acquisition(acquisition)
    acquisition.start()

    cv2.namedWindow(cfg.window_name, cv2.WINDOW_AUTOSIZE)
    cv2.setMouseCallback(cfg.window_name, lambda event, x, y, flags, param: route_mouse_event(cv2, controller, event, x, y))

    iterations = 0
    try:
        while True:
            renderer.render_frame()
            cv2.imshow(cfg.window_name, cv2.cvtColor(backend.image, cv2.COLOR_RGB2BGR))
            key = cv2.waitKey(int(cfg.frame_interval_ms)) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord("s"):
                save_rgb_u8(snapshot_path, backend.image)
                print(f"Wrote {snapshot_path}")
            iterations += 1
            if max_frames and iterations >= max_frames:
                break
    finally:
        acquisition.cancel(join_timeout=1.0)
        cv2.destroyWindow(cfg.window_name)
    logger.info("Rendered %d frames", renderer.frame_count)
    return renderer.frame_count
