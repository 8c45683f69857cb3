from __future__ import annotations

import math
from typing import Optional, Union

import numpy as np
from scipy.spatial.transform import Rotation

from .types import Vector, VectorLike

RotationLike = Union[float, VectorLike, Rotation]

_QUAT_EPS = 1e-300


def _as_vector(value: VectorLike, dim: Optional[int] = None) -> Vector:
    vec = np.array(value, dtype=float).reshape(-1)
    if dim is not None and vec.shape[0] != dim:
        raise ValueError(f"expected a {dim}-vector, got shape {vec.shape}")
    return vec


def _check_dim(dim: int) -> int:
    if dim not in (2, 3):
        raise ValueError(f"only 2D and 3D transforms are supported, got dim={dim}")
    return dim


def _rotation_size(dim: int) -> int:
    return 4 if dim == 3 else 1


def _rotation_identity(dim: int) -> Vector:
    if dim == 3:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return np.array([0.0])


# quaternions are stored as (w, x, y, z); scipy uses (x, y, z, w)


def _quat_from_scipy(rot: Rotation) -> Vector:
    x, y, z, w = rot.as_quat()
    return np.array([w, x, y, z], dtype=float)


def _quat_to_scipy(q: Vector) -> Rotation:
    return Rotation.from_quat([q[1], q[2], q[3], q[0]])


def _quat_normalize(q: Vector) -> Vector:
    norm = float(np.linalg.norm(q))
    if norm <= _QUAT_EPS:
        raise ValueError("cannot normalize a zero quaternion")
    return q / norm


def _quat_mul(a: Vector, b: Vector) -> Vector:
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array(
        [
            aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
        ],
        dtype=float,
    )


def _quat_inverse(q: Vector) -> Vector:
    conj = np.array([q[0], -q[1], -q[2], -q[3]], dtype=float)
    return conj / float(np.dot(q, q))


def _quat_rotate(q: Vector, v: Vector) -> Vector:
    w = q[0]
    u = q[1:]
    uv = np.cross(u, v)
    return v + 2.0 * (w * uv + np.cross(u, uv))


def _angle_matrix(angle: float) -> np.ndarray:
    c = math.cos(angle)
    s = math.sin(angle)
    return np.array([[c, -s], [s, c]], dtype=float)


def _coerce_rotation(value: RotationLike, dim: int) -> Vector:
    """Return normalized rotation coefficients for ``dim``."""

    if dim == 3:
        if isinstance(value, Rotation):
            return _quat_from_scipy(value)
        return _quat_normalize(_as_vector(value, 4))
    if isinstance(value, Rotation):
        raise ValueError("scipy rotations describe 3D rotations only")
    return _as_vector(value, 1)


def _rot_normalize(dim: int, r: Vector) -> Vector:
    if dim == 3:
        return _quat_normalize(r)
    return r.copy()


def _rot_compose(dim: int, a: Vector, b: Vector) -> Vector:
    """Rotation ``a * b``: apply ``b`` first, then ``a``."""

    if dim == 3:
        return _quat_mul(a, b)
    return a + b


def _rot_inverse(dim: int, r: Vector) -> Vector:
    if dim == 3:
        return _quat_inverse(r)
    return -r


def _rot_apply(dim: int, r: Vector, v: Vector) -> Vector:
    if dim == 3:
        return _quat_rotate(r, v)
    return _angle_matrix(float(r[0])) @ v


def _rot_matrix(dim: int, r: Vector) -> np.ndarray:
    if dim == 3:
        return _quat_to_scipy(r).as_matrix()
    return _angle_matrix(float(r[0]))


__all__ = [
    "RotationLike",
    "_angle_matrix",
    "_as_vector",
    "_check_dim",
    "_coerce_rotation",
    "_quat_from_scipy",
    "_quat_inverse",
    "_quat_mul",
    "_quat_normalize",
    "_quat_rotate",
    "_quat_to_scipy",
    "_rot_apply",
    "_rot_compose",
    "_rot_inverse",
    "_rot_matrix",
    "_rot_normalize",
    "_rotation_identity",
    "_rotation_size",
]
