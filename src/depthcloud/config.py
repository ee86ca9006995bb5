from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

SCHEMA_VERSION = "depthcloud.config.v0"


class ConfigValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ViewerConfig:
    camera: str
    depth: Path | None = None
    color: Path | None = None
    window_name: str = "depthcloud"
    clear_color: tuple[int, int, int] = (0, 0, 0)
    frame_interval_ms: int = 16

    def with_overrides(self, **overrides: Any) -> "ViewerConfig":
        """Copy with every non-None override applied (CLI flags win over the file)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "depth" in values:
            values["depth"] = Path(values["depth"])
        if "color" in values:
            values["color"] = Path(values["color"])
        return replace(self, **values)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def load_viewer_config(path: Path) -> ViewerConfig:
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    _require(isinstance(data, dict), f"{path} must contain a JSON object")
    cfg = parse_viewer_config(data)
    # Relative frame paths are relative to the config file.
    base = path.parent
    return replace(
        cfg,
        depth=(base / cfg.depth) if cfg.depth is not None and not cfg.depth.is_absolute() else cfg.depth,
        color=(base / cfg.color) if cfg.color is not None and not cfg.color.is_absolute() else cfg.color,
    )


def parse_viewer_config(data: dict[str, Any]) -> ViewerConfig:
    _require(data.get("schema_version") == SCHEMA_VERSION, f"schema_version must be {SCHEMA_VERSION}")

    camera = data.get("camera")
    _require(isinstance(camera, str) and camera.strip() != "", "camera is required")

    depth = data.get("depth")
    color = data.get("color")
    _require(depth is None or isinstance(depth, str), "depth must be a path string")
    _require(color is None or isinstance(color, str), "color must be a path string")

    window_name = data.get("window_name", "depthcloud")
    _require(isinstance(window_name, str) and window_name != "", "window_name must be a non-empty string")

    clear = data.get("clear_color", [0, 0, 0])
    _require(isinstance(clear, (list, tuple)) and len(clear) == 3, "clear_color must be [r,g,b]")
    r, g, b = (int(c) for c in clear)
    _require(all(0 <= c <= 255 for c in (r, g, b)), "clear_color values must be in 0..255")

    interval = int(data.get("frame_interval_ms", 16))
    _require(interval > 0, "frame_interval_ms must be > 0")

    return ViewerConfig(
        camera=camera,
        depth=Path(depth) if depth is not None else None,
        color=Path(color) if color is not None else None,
        window_name=window_name,
        clear_color=(r, g, b),
        frame_interval_ms=interval,
    )
