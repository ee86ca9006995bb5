from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from depthcloud.config import ConfigValidationError, ViewerConfig, load_viewer_config
from depthcloud.core.calibration import UnsupportedCameraError, calibration_to_dict, resolve
from depthcloud.cli.viewer import render_snapshot, run_viewer


def _print_calibration(identity: str, as_json: bool) -> None:
    data = calibration_to_dict(resolve(identity))
    if as_json:
        print(json.dumps(data, indent=2, sort_keys=True))
        return
    print(f"camera: {identity}")
    print(f"depth_scale: {data['depth_scale']:.10g}")
    for sensor in ("depth", "color"):
        s = data[sensor]
        fx, fy = s["focal_length"]
        cx, cy = s["offset"]
        print(f"{sensor}: f=({fx:.4f}, {fy:.4f}) c=({cx:.4f}, {cy:.4f}) distortion={s['distortion']['model']}")
    t = [row[3] for row in data["depth_to_color"][:3]]
    print(f"depth_to_color t=({t[0]:.6f}, {t[1]:.6f}, {t[2]:.6f})")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="depthcloud")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    show = sub.add_parser("show-calibration", help="Print the factory calibration for a camera identity.")
    show.add_argument("identity", type=str, help='Camera identity / track label, e.g. "SR300".')
    show.add_argument("--json", action="store_true", help="Print as JSON.")

    render = sub.add_parser("render", help="Render one depth+color frame pair to a PNG (no window).")
    render.add_argument("--camera", type=str, required=True)
    render.add_argument("--depth", type=Path, required=True, help="16-bit depth image or .npy.")
    render.add_argument("--color", type=Path, required=True, help="Color image.")
    render.add_argument("--out", type=Path, required=True)
    render.add_argument("--yaw", type=float, default=0.0, help="Degrees, clamped to [-120, 120].")
    render.add_argument("--pitch", type=float, default=0.0, help="Degrees, clamped to [-80, 80].")

    view = sub.add_parser("view", help="Interactive point-cloud window (OpenCV). Drag to orbit.")
    view.add_argument("--config", type=Path, default=None, help="JSON viewer config.")
    view.add_argument("--camera", type=str, default=None)
    view.add_argument("--depth", type=Path, default=None, help="Depth frame file or directory.")
    view.add_argument("--color", type=Path, default=None, help="Color frame file or directory.")
    view.add_argument("--snapshot", type=Path, default=Path("depthcloud_snapshot.png"))
    view.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0=run until closed).")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.cmd == "show-calibration":
            _print_calibration(args.identity, args.json)
            return 0

        if args.cmd == "render":
            render_snapshot(
                camera=args.camera,
                depth=args.depth,
                color=args.color,
                out=args.out,
                yaw=args.yaw,
                pitch=args.pitch,
            )
            print(f"Wrote {args.out}")
            return 0

        if args.cmd == "view":
            if args.config is not None:
                cfg = load_viewer_config(args.config)
            elif args.camera is not None:
                cfg = ViewerConfig(camera=args.camera)
            else:
                raise ConfigValidationError("either --config or --camera is required")
            cfg = cfg.with_overrides(camera=args.camera, depth=args.depth, color=args.color)
            run_viewer(cfg, snapshot_path=args.snapshot, max_frames=args.max_frames)
            return 0
    except (ConfigValidationError, UnsupportedCameraError, FileNotFoundError, ValueError) as e:
        print(f"depthcloud: error: {e}", file=sys.stderr)
        return 2

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
