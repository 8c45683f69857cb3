"""Similarity transforms: rotation, translation and uniform scale."""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation

from .config import get_numeric_config
from .math_utils import (
    RotationLike,
    _as_vector,
    _check_dim,
    _coerce_rotation,
    _rot_apply,
    _rot_compose,
    _rot_inverse,
    _rot_matrix,
    _rot_normalize,
    _rotation_identity,
)
from .types import Vector, VectorLike


class SimilarityTransform:
    """Rotation + translation + uniform scale acting as ``s * (R v + t)``.

    The translation lives in the rotated frame and is scaled together with the
    rotated vector. Composition with ``*`` applies the left operand first, so
    ``(a * b)(v) == b(a(v))``.

    In 3D the rotation is a unit quaternion stored as ``(w, x, y, z)``; in 2D it
    is a signed angle in radians.
    """

    __slots__ = ("_dim", "_rotation", "_translation", "_scale")

    def __init__(
        self,
        rotation: Optional[RotationLike] = None,
        translation: Optional[VectorLike] = None,
        scale: float = 1.0,
        *,
        dim: int = 3,
    ) -> None:
        self._dim = _check_dim(dim)
        if rotation is None:
            self._rotation = _rotation_identity(dim)
        else:
            self._rotation = _coerce_rotation(rotation, dim)
        if translation is None:
            self._translation = np.zeros(dim)
        else:
            self._translation = _as_vector(translation, dim)
        self._scale = float(scale)

    @classmethod
    def identity(cls, dim: int = 3) -> "SimilarityTransform":
        return cls(dim=dim)

    @classmethod
    def from_scipy_rotation(
        cls,
        rotation: Rotation,
        translation: Optional[VectorLike] = None,
        scale: float = 1.0,
    ) -> "SimilarityTransform":
        return cls(rotation, translation, scale, dim=3)

    def copy(self) -> "SimilarityTransform":
        other = SimilarityTransform.__new__(SimilarityTransform)
        other._dim = self._dim
        other._rotation = self._rotation.copy()
        other._translation = self._translation.copy()
        other._scale = self._scale
        return other

    # ------------------------------------------------------------------
    # field access

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def rotation(self) -> Vector:
        return self._rotation.copy()

    @property
    def translation(self) -> Vector:
        return self._translation.copy()

    @property
    def scaling(self) -> float:
        return self._scale

    def set_rotation(self, rotation: RotationLike) -> "SimilarityTransform":
        self._rotation = _coerce_rotation(rotation, self._dim)
        return self

    def set_translation(self, translation: VectorLike) -> "SimilarityTransform":
        self._translation = _as_vector(translation, self._dim)
        return self

    def set_scale(self, scale: float) -> "SimilarityTransform":
        self._scale = float(scale)
        return self

    def set_identity(self) -> "SimilarityTransform":
        self._rotation = _rotation_identity(self._dim)
        self._translation = np.zeros(self._dim)
        self._scale = 1.0
        return self

    def normalize(self) -> "SimilarityTransform":
        self._rotation = _rot_normalize(self._dim, self._rotation)
        return self

    # ------------------------------------------------------------------
    # composition

    def rotate(self, rotation: RotationLike) -> "SimilarityTransform":
        """Left-multiply ``rotation`` onto the stored rotation."""

        r = _coerce_rotation(rotation, self._dim)
        self._rotation = _rot_normalize(self._dim, _rot_compose(self._dim, r, self._rotation))
        return self

    def translate(self, translation: VectorLike) -> "SimilarityTransform":
        self._translation = self._translation + _as_vector(translation, self._dim)
        return self

    def scale(self, factor: float) -> "SimilarityTransform":
        self._scale *= float(factor)
        return self

    def compose(self, other: "SimilarityTransform") -> "SimilarityTransform":
        """Compose in place so that the result applies ``self`` then ``other``."""

        self._require_same_dim(other)
        self._rotation = _rot_normalize(
            self._dim, _rot_compose(self._dim, other._rotation, self._rotation)
        )
        self._translation = (
            _rot_apply(self._dim, other._rotation, self._translation)
            + other._translation / self._scale
        )
        self._scale *= other._scale
        return self

    def invert(self) -> "SimilarityTransform":
        self._rotation = _rot_normalize(self._dim, _rot_inverse(self._dim, self._rotation))
        self._translation = _rot_apply(self._dim, self._rotation, self._translation) * (-self._scale)
        self._scale = 1.0 / self._scale
        return self

    def inverse(self) -> "SimilarityTransform":
        return self.copy().invert()

    def __imul__(self, other: "SimilarityTransform") -> "SimilarityTransform":
        if not isinstance(other, SimilarityTransform):
            return NotImplemented
        return self.compose(other)

    def __mul__(self, other: "SimilarityTransform") -> "SimilarityTransform":
        if not isinstance(other, SimilarityTransform):
            return NotImplemented
        return self.copy().compose(other)

    # ------------------------------------------------------------------
    # vector application; inputs are never modified

    def rotate_vector(self, vec: VectorLike) -> Vector:
        return _rot_apply(self._dim, self._rotation, _as_vector(vec, self._dim))

    def translate_vector(self, vec: VectorLike) -> Vector:
        return _as_vector(vec, self._dim) + self._translation

    def scale_vector(self, vec: VectorLike) -> Vector:
        return _as_vector(vec, self._dim) * self._scale

    def transform_vector(self, vec: VectorLike) -> Vector:
        v = _as_vector(vec, self._dim)
        return (_rot_apply(self._dim, self._rotation, v) + self._translation) * self._scale

    __call__ = transform_vector

    # ------------------------------------------------------------------

    def is_approx(self, other: "SimilarityTransform", tol: Optional[float] = None) -> bool:
        """Compare fieldwise; ``tol`` defaults to ``NumericConfig.approx_tol``."""

        if tol is None:
            tol = get_numeric_config().approx_tol
        if other._dim != self._dim:
            return False
        return (
            bool(np.all(np.abs(self._rotation - other._rotation) < tol))
            and float(np.linalg.norm(self._translation - other._translation)) < tol
            and abs(self._scale - other._scale) < tol
        )

    def rotation_matrix(self) -> np.ndarray:
        return _rot_matrix(self._dim, self._rotation)

    def as_affine_matrix(self) -> np.ndarray:
        """Return the compact ``dim x (dim + 1)`` matrix ``[R | R t]``.

        The scale factor is not part of the matrix.
        """

        rot = self.rotation_matrix()
        return np.hstack([rot, (rot @ self._translation).reshape(-1, 1)])

    def _require_same_dim(self, other: "SimilarityTransform") -> None:
        if other._dim != self._dim:
            raise ValueError(f"cannot compose a {self._dim}D transform with a {other._dim}D transform")

    def __repr__(self) -> str:
        return (
            f"SimilarityTransform(rotation={self._rotation.tolist()}, "
            f"translation={self._translation.tolist()}, scale={self._scale!r}, dim={self._dim})"
        )

    def __str__(self) -> str:
        return (
            f"Rotation:    {' '.join(f'{c:g}' for c in self._rotation)}\n"
            f"Translation: {' '.join(f'{c:g}' for c in self._translation)}\n"
            f"Scale:       {self._scale:g}"
        )


def compose(first: SimilarityTransform, second: SimilarityTransform) -> SimilarityTransform:
    """Return the transform applying ``first`` and then ``second``."""

    return first * second


__all__ = ["SimilarityTransform", "compose"]
