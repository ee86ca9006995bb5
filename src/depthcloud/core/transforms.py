"""
4x4 homogeneous transforms in the OpenGL conventions (right-handed, clip-space
z in [-1, 1]).

All matrices are row-major float32 arrays acting on column vectors:
`M @ [x, y, z, 1]`. Composition reads right-to-left, so `translate(...) @
rotate_x(...)` rotates first.
"""
from __future__ import annotations

import math

import numpy as np


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float32)


def translate(tx: float, ty: float, tz: float) -> np.ndarray:
    m = identity()
    m[:3, 3] = (tx, ty, tz)
    return m


def rotate_x(angle_rad: float) -> np.ndarray:
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    m = identity()
    m[1, 1], m[1, 2] = c, -s
    m[2, 1], m[2, 2] = s, c
    return m


def rotate_y(angle_rad: float) -> np.ndarray:
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    m = identity()
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m


def look_at(eye, target, up) -> np.ndarray:
    """View matrix placing the camera at `eye`, looking at `target`."""
    eye = np.asarray(eye, dtype=np.float64).reshape(3)
    target = np.asarray(target, dtype=np.float64).reshape(3)
    up = np.asarray(up, dtype=np.float64).reshape(3)

    z = eye - target
    z /= np.linalg.norm(z)
    x = np.cross(up, z)
    x /= np.linalg.norm(x)
    y = np.cross(z, x)

    m = np.eye(4, dtype=np.float64)
    m[0, :3] = x
    m[1, :3] = y
    m[2, :3] = z
    m[:3, 3] = -m[:3, :3] @ eye
    return m.astype(np.float32)


def perspective(fov_y_rad: float, aspect: float, near: float, far: float) -> np.ndarray:
    f = 1.0 / math.tan(fov_y_rad / 2.0)
    nf = 1.0 / (near - far)
    m = np.zeros((4, 4), dtype=np.float32)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) * nf
    m[2, 3] = 2.0 * far * near * nf
    m[3, 2] = -1.0
    return m


def transform_points(m: np.ndarray, xyz: np.ndarray) -> np.ndarray:
    """
    Apply a 4x4 matrix to (N,3) points; returns homogeneous (N,4) results.
    """
    m = np.asarray(m, dtype=np.float32)
    xyz = np.asarray(xyz, dtype=np.float32).reshape(-1, 3)
    xyzw = np.concatenate([xyz, np.ones((xyz.shape[0], 1), dtype=np.float32)], axis=1)
    return xyzw @ m.T
