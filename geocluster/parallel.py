"""Residuals and derivatives of parallelism constraints.

Directional primitives carry a direction 3-vector inside their parameter
block. Once that sub-vector is extracted the math is identical for every
primitive: the residual is the distance between the two directions (``SAME``)
or between one and the negated other (``OPPOSITE``). ``BOTH`` accepts either
sense and picks the branch from the sign of ``dot(d1, d2)``; a zero dot product
counts as ``SAME``.

The residual divides by a vector norm in its derivatives. Inputs that make the
selected difference vanish exactly (``d1 == d2`` for ``SAME``) have no defined
gradient; numpy then yields ``nan``. Set ``NumericConfig.check_degenerate`` to
raise :class:`DegenerateDirectionError` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Tuple, Union

import numpy as np

from .config import get_numeric_config
from .logging_utils import apply_debug_logging
from .math_utils import _as_vector
from .types import (
    DegenerateDirectionError,
    ParallelDirectionError,
    UnsupportedPrimitivePairError,
    Vector,
    VectorLike,
)

logger = logging.getLogger(__name__)


class Direction(Enum):
    SAME = "same"
    OPPOSITE = "opposite"
    BOTH = "both"


def _resolve_branch(d1: Vector, d2: Vector, direction: Direction) -> Direction:
    direction = Direction(direction)
    if direction is not Direction.BOTH:
        return direction
    if float(np.dot(d1, d2)) >= 0.0:
        return Direction.SAME
    return Direction.OPPOSITE


def _difference(d1: Vector, d2: Vector, branch: Direction) -> Vector:
    if branch is Direction.SAME:
        return d1 - d2
    return d1 + d2


def _norm(vec: Vector) -> np.floating:
    norm = np.linalg.norm(vec)
    if norm == 0.0 and get_numeric_config().check_degenerate:
        raise DegenerateDirectionError("parallel constraint evaluated at coincident directions")
    return norm


def _directions(*vectors: VectorLike) -> Tuple[Vector, ...]:
    return tuple(_as_vector(v, 3) for v in vectors)


def residual(d1: VectorLike, d2: VectorLike, direction: Direction = Direction.SAME) -> float:
    a, b = _directions(d1, d2)
    branch = _resolve_branch(a, b, direction)
    return float(np.linalg.norm(_difference(a, b, branch)))


def gradient_wrt_first(
    d1: VectorLike, d2: VectorLike, dd1: VectorLike, direction: Direction = Direction.SAME
) -> float:
    """Directional derivative of :func:`residual` along ``dd1``."""

    a, b, da = _directions(d1, d2, dd1)
    diff = _difference(a, b, _resolve_branch(a, b, direction))
    return float(np.dot(diff, da) / _norm(diff))


def gradient_wrt_second(
    d1: VectorLike, d2: VectorLike, dd2: VectorLike, direction: Direction = Direction.SAME
) -> float:
    """Directional derivative of :func:`residual` along ``dd2``."""

    a, b, db = _directions(d1, d2, dd2)
    branch = _resolve_branch(a, b, direction)
    diff = _difference(a, b, branch)
    if branch is Direction.SAME:
        db = -db
    return float(np.dot(diff, db) / _norm(diff))


def _require_smooth(direction: Direction) -> Direction:
    direction = Direction(direction)
    if direction is Direction.BOTH:
        raise ParallelDirectionError(
            "no closed-form gradient exists for Direction.BOTH; the branch depends on the inputs"
        )
    return direction


def full_gradient_wrt_first(d1: VectorLike, d2: VectorLike, direction: Direction = Direction.SAME) -> Vector:
    direction = _require_smooth(direction)
    a, b = _directions(d1, d2)
    diff = _difference(a, b, direction)
    return diff / _norm(diff)


def full_gradient_wrt_second(d1: VectorLike, d2: VectorLike, direction: Direction = Direction.SAME) -> Vector:
    direction = _require_smooth(direction)
    a, b = _directions(d1, d2)
    diff = _difference(a, b, direction)
    if direction is Direction.SAME:
        return (b - a) / _norm(diff)
    return (b + a) / _norm(diff)


class PrimitiveKind(Enum):
    LINE = "line"
    PLANE = "plane"
    CYLINDER = "cylinder"


@dataclass(frozen=True)
class BlockLayout:
    """Size of a primitive's parameter block and where its direction starts."""

    size: int
    direction_offset: int

    def direction(self, block: Vector) -> Vector:
        return block[self.direction_offset : self.direction_offset + 3]


# lines and planes: point (0-2), direction/normal (3-5)
# cylinders: point (0-2), axis (3-5), radius (6)
PRIMITIVE_LAYOUTS: Dict[PrimitiveKind, BlockLayout] = {
    PrimitiveKind.LINE: BlockLayout(size=6, direction_offset=3),
    PrimitiveKind.PLANE: BlockLayout(size=6, direction_offset=3),
    PrimitiveKind.CYLINDER: BlockLayout(size=7, direction_offset=3),
}

SUPPORTED_PAIRS: FrozenSet[Tuple[PrimitiveKind, PrimitiveKind]] = frozenset(
    {
        (PrimitiveKind.LINE, PrimitiveKind.LINE),
        (PrimitiveKind.PLANE, PrimitiveKind.PLANE),
        (PrimitiveKind.LINE, PrimitiveKind.PLANE),
        (PrimitiveKind.CYLINDER, PrimitiveKind.CYLINDER),
    }
)

KindLike = Union[PrimitiveKind, str]


class ParallelConstraint:
    """Parallelism between two primitives, evaluated on whole parameter blocks."""

    def __init__(self, first: KindLike, second: KindLike, direction: Direction = Direction.SAME) -> None:
        first = PrimitiveKind(first)
        second = PrimitiveKind(second)
        if (first, second) not in SUPPORTED_PAIRS:
            raise UnsupportedPrimitivePairError(first.value, second.value)
        self.first = first
        self.second = second
        self.direction = Direction(direction)
        self._first_layout = PRIMITIVE_LAYOUTS[first]
        self._second_layout = PRIMITIVE_LAYOUTS[second]

    def __repr__(self) -> str:
        return (
            f"ParallelConstraint({self.first.value}, {self.second.value}, "
            f"direction={self.direction.value})"
        )

    def _extract(self, layout: BlockLayout, block: VectorLike, kind: PrimitiveKind) -> Vector:
        vec = np.asarray(block, dtype=float).reshape(-1)
        if vec.shape[0] != layout.size:
            raise ValueError(f"{kind.value} blocks hold {layout.size} parameters, got {vec.shape[0]}")
        return layout.direction(vec)

    def _pair(self, param1: VectorLike, param2: VectorLike) -> Tuple[Vector, Vector]:
        return (
            self._extract(self._first_layout, param1, self.first),
            self._extract(self._second_layout, param2, self.second),
        )

    def calculate(self, param1: VectorLike, param2: VectorLike) -> float:
        d1, d2 = self._pair(param1, param2)
        return residual(d1, d2, self.direction)

    def gradient_first(self, param1: VectorLike, param2: VectorLike, dparam1: VectorLike) -> float:
        d1, d2 = self._pair(param1, param2)
        dd1 = self._extract(self._first_layout, dparam1, self.first)
        return gradient_wrt_first(d1, d2, dd1, self.direction)

    def gradient_second(self, param1: VectorLike, param2: VectorLike, dparam2: VectorLike) -> float:
        d1, d2 = self._pair(param1, param2)
        dd2 = self._extract(self._second_layout, dparam2, self.second)
        return gradient_wrt_second(d1, d2, dd2, self.direction)

    def full_gradient_first(self, param1: VectorLike, param2: VectorLike) -> Vector:
        """Gradient over the first block; entries outside the direction are zero."""

        d1, d2 = self._pair(param1, param2)
        layout = self._first_layout
        gradient = np.zeros(layout.size)
        gradient[layout.direction_offset : layout.direction_offset + 3] = full_gradient_wrt_first(
            d1, d2, self.direction
        )
        return gradient

    def full_gradient_second(self, param1: VectorLike, param2: VectorLike) -> Vector:
        d1, d2 = self._pair(param1, param2)
        layout = self._second_layout
        gradient = np.zeros(layout.size)
        gradient[layout.direction_offset : layout.direction_offset + 3] = full_gradient_wrt_second(
            d1, d2, self.direction
        )
        return gradient


__all__ = [
    "BlockLayout",
    "Direction",
    "PRIMITIVE_LAYOUTS",
    "ParallelConstraint",
    "PrimitiveKind",
    "SUPPORTED_PAIRS",
    "full_gradient_wrt_first",
    "full_gradient_wrt_second",
    "gradient_wrt_first",
    "gradient_wrt_second",
    "residual",
]


apply_debug_logging(globals(), logger=logger)
