from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

DEPTH_MAX = 65535.0
_DEPTH_MODES = ("I;16", "I;16L", "I;16B", "I")


def load_depth_frame(path: str | Path) -> np.ndarray:
    """
    Load a depth frame as (H,W) float32 normalized to [0, 1].

    Accepts 16-bit single-channel images (png/tiff) and .npy arrays (uint16, or
    float already in [0, 1]). 8-bit images are rejected: they cannot carry depth.
    """
    p = Path(path)
    if p.suffix.lower() == ".npy":
        arr = np.load(p)
        if arr.ndim != 2:
            raise ValueError(f"{p}: depth array must be (H,W), got {arr.shape}")
        if arr.dtype == np.uint16:
            return arr.astype(np.float32) / np.float32(DEPTH_MAX)
        if np.issubdtype(arr.dtype, np.floating):
            return arr.astype(np.float32)
        raise ValueError(f"{p}: unsupported depth dtype {arr.dtype}")

    with Image.open(p) as im:
        if im.mode not in _DEPTH_MODES:
            raise ValueError(f"{p}: depth image must be 16-bit single channel, got mode {im.mode}")
        arr = np.asarray(im)
    arr = np.clip(arr.astype(np.float32), 0.0, DEPTH_MAX)
    return arr / np.float32(DEPTH_MAX)


def load_color_frame(path: str | Path) -> np.ndarray:
    """Load a color frame as (H,W,4) uint8 RGBA."""
    with Image.open(Path(path)) as im:
        im = im.convert("RGBA")
        arr = np.asarray(im, dtype=np.uint8)
    return arr


def save_rgb_u8(path: str | Path, image: np.ndarray) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.asarray(image, dtype=np.uint8)).save(p)
    return p


def list_frames(path: str | Path) -> list[Path]:
    """A single file, or the sorted image/.npy files of a directory."""
    p = Path(path)
    if p.is_dir():
        frames = sorted(q for q in p.iterdir() if q.suffix.lower() in (".png", ".tif", ".tiff", ".npy", ".jpg", ".jpeg", ".webp"))
        if not frames:
            raise FileNotFoundError(f"No frames in {p}")
        return frames
    if not p.exists():
        raise FileNotFoundError(f"Missing {p}")
    return [p]
