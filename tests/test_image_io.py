from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from depthcloud.core.image_io import list_frames, load_color_frame, load_depth_frame, save_rgb_u8


def _write_depth_png(path: Path, arr: np.ndarray) -> None:
    Image.fromarray(arr.astype(np.uint16)).save(path)


def test_load_depth_png_normalizes_16bit(tmp_path: Path) -> None:
    arr = np.array([[0, 1000], [32768, 65535]], dtype=np.uint16)
    p = tmp_path / "d.png"
    _write_depth_png(p, arr)
    d = load_depth_frame(p)
    assert d.dtype == np.float32
    assert d.shape == (2, 2)
    assert np.allclose(d, arr / 65535.0, atol=1e-7)


def test_load_depth_npy(tmp_path: Path) -> None:
    p = tmp_path / "d.npy"
    np.save(p, np.array([[0, 65535]], dtype=np.uint16))
    assert load_depth_frame(p).tolist() == [[0.0, 1.0]]
    np.save(p, np.array([[0.25, 0.5]], dtype=np.float64))
    d = load_depth_frame(p)
    assert d.dtype == np.float32
    assert d.tolist() == [[0.25, 0.5]]


def test_load_depth_rejects_8bit(tmp_path: Path) -> None:
    p = tmp_path / "d8.png"
    Image.fromarray(np.zeros((4, 4), dtype=np.uint8)).save(p)
    with pytest.raises(ValueError):
        load_depth_frame(p)


def test_load_color_as_rgba(tmp_path: Path) -> None:
    p = tmp_path / "c.png"
    rgb = np.zeros((3, 4, 3), dtype=np.uint8)
    rgb[..., 0] = 200
    Image.fromarray(rgb).save(p)
    c = load_color_frame(p)
    assert c.shape == (3, 4, 4)
    assert c.dtype == np.uint8
    assert np.all(c[..., 0] == 200)
    assert np.all(c[..., 3] == 255)


def test_save_and_list_frames(tmp_path: Path) -> None:
    out = save_rgb_u8(tmp_path / "sub" / "snap.png", np.full((2, 3, 3), 7, dtype=np.uint8))
    assert out.exists()
    save_rgb_u8(tmp_path / "sub" / "a.png", np.zeros((2, 3, 3), dtype=np.uint8))
    (tmp_path / "sub" / "notes.txt").write_text("x", encoding="utf-8")
    assert [p.name for p in list_frames(tmp_path / "sub")] == ["a.png", "snap.png"]
    assert list_frames(out) == [out]
    with pytest.raises(FileNotFoundError):
        list_frames(tmp_path / "missing.png")
