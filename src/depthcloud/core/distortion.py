from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np


class DistortionModelMismatch(ValueError):
    pass


class DistortionModel(IntEnum):
    """
    Lens distortion models, numbered as the depth-camera firmware reports them.

    NONE is an ideal pinhole. MODIFIED_BROWN_CONRADY maps ideal normalized
    coordinates to distorted ones (color sensors). INVERSE_BROWN_CONRADY maps
    distorted normalized coordinates back to ideal ones (depth sensors).
    """

    NONE = 0
    MODIFIED_BROWN_CONRADY = 1
    INVERSE_BROWN_CONRADY = 2


@dataclass(frozen=True)
class DistortionSpec:
    """
    Model tag plus coefficients `[k1, k2, p1, p2, k3]` (zero-padded to 5).
    """

    model: DistortionModel = DistortionModel.NONE
    coeffs: tuple[float, ...] = field(default=(0.0, 0.0, 0.0, 0.0, 0.0))

    def __post_init__(self) -> None:
        try:
            model = DistortionModel(self.model)
        except ValueError as e:
            raise DistortionModelMismatch(f"unknown distortion model: {self.model!r}") from e
        coeffs = tuple(float(c) for c in self.coeffs)
        if len(coeffs) > 5:
            raise DistortionModelMismatch(f"at most 5 distortion coefficients, got {len(coeffs)}")
        if not all(math.isfinite(c) for c in coeffs):
            raise DistortionModelMismatch("distortion coefficients must be finite")
        coeffs = coeffs + (0.0,) * (5 - len(coeffs))
        if model == DistortionModel.NONE and any(c != 0.0 for c in coeffs):
            raise DistortionModelMismatch("model NONE cannot carry non-zero coefficients")
        object.__setattr__(self, "model", model)
        object.__setattr__(self, "coeffs", coeffs)

    @property
    def k1(self) -> float:
        return self.coeffs[0]

    @property
    def k2(self) -> float:
        return self.coeffs[1]

    @property
    def p1(self) -> float:
        return self.coeffs[2]

    @property
    def p2(self) -> float:
        return self.coeffs[3]

    @property
    def k3(self) -> float:
        return self.coeffs[4]

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return distort(self, x, y)

    def undistort(self, xd: np.ndarray, yd: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return undistort(self, xd, yd)


NO_DISTORTION = DistortionSpec()


def _as_f32(x: np.ndarray) -> np.ndarray:
    return np.asarray(x, dtype=np.float32)


def _coeffs_f32(spec: DistortionSpec) -> tuple[np.float32, ...]:
    return tuple(np.float32(c) for c in spec.coeffs)


def _modified_brown_conrady(spec: DistortionSpec, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    k1, k2, p1, p2, k3 = _coeffs_f32(spec)
    r2 = x * x + y * y
    f = np.float32(1.0) + k1 * r2 + k2 * r2 * r2 + k3 * r2 * r2 * r2
    x = x * f
    y = y * f
    xd = x + np.float32(2.0) * p1 * x * y + p2 * (r2 + np.float32(2.0) * x * x)
    yd = y + np.float32(2.0) * p2 * x * y + p1 * (r2 + np.float32(2.0) * y * y)
    return xd, yd


def _inverse_brown_conrady(spec: DistortionSpec, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    k1, k2, p1, p2, k3 = _coeffs_f32(spec)
    r2 = x * x + y * y
    f = np.float32(1.0) + k1 * r2 + k2 * r2 * r2 + k3 * r2 * r2 * r2
    xu = x * f + np.float32(2.0) * p1 * x * y + p2 * (r2 + np.float32(2.0) * x * x)
    yu = y * f + np.float32(2.0) * p2 * x * y + p1 * (r2 + np.float32(2.0) * y * y)
    return xu, yu


def _invert(fn, spec: DistortionSpec, tx: np.ndarray, ty: np.ndarray, iterations: int) -> tuple[np.ndarray, np.ndarray]:
    # Fixed-point refinement: find (x, y) with fn(x, y) == (tx, ty).
    x = tx.copy()
    y = ty.copy()
    for _ in range(int(iterations)):
        ex, ey = fn(spec, x, y)
        x = x + (tx - ex)
        y = y + (ty - ey)
    return x, y


def distort(
    spec: DistortionSpec, x: np.ndarray, y: np.ndarray, iterations: int = 20
) -> tuple[np.ndarray, np.ndarray]:
    """
    Ideal normalized coordinates -> distorted normalized coordinates.

    Closed form for MODIFIED_BROWN_CONRADY (the color projection path).
    For INVERSE_BROWN_CONRADY the closed form describes the other direction,
    so this inverts it with `iterations` fixed-point steps.
    """
    x = _as_f32(x)
    y = _as_f32(y)
    if spec.model == DistortionModel.NONE:
        return x, y
    if spec.model == DistortionModel.MODIFIED_BROWN_CONRADY:
        return _modified_brown_conrady(spec, x, y)
    return _invert(_inverse_brown_conrady, spec, x, y, iterations)


def undistort(
    spec: DistortionSpec, xd: np.ndarray, yd: np.ndarray, iterations: int = 20
) -> tuple[np.ndarray, np.ndarray]:
    """
    Distorted normalized coordinates -> ideal normalized coordinates.

    Closed form for INVERSE_BROWN_CONRADY (the depth deprojection path),
    iterative inverse of `distort` for MODIFIED_BROWN_CONRADY.
    """
    xd = _as_f32(xd)
    yd = _as_f32(yd)
    if spec.model == DistortionModel.NONE:
        return xd, yd
    if spec.model == DistortionModel.INVERSE_BROWN_CONRADY:
        return _inverse_brown_conrady(spec, xd, yd)
    return _invert(_modified_brown_conrady, spec, xd, yd, iterations)


def distortion_to_dict(spec: DistortionSpec) -> dict:
    return {"model": spec.model.name, "coeffs": list(spec.coeffs)}
