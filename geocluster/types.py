from __future__ import annotations

from enum import Enum
from typing import Sequence, Union

import numpy as np

Vector = np.ndarray
VectorLike = Union[Sequence[float], np.ndarray]


class ClusterMode(Enum):
    """Storage a cluster frame is bound to.

    ``FREE`` clusters take part in the solve and keep their pose in the
    solver's parameter arena. ``FIX`` clusters are anchors whose pose lives in
    storage private to the frame.
    """

    FREE = "free"
    FIX = "fix"


class ClusterPhase(Enum):
    UNBOUND = "unbound"
    POPULATING = "populating"
    NORMALIZED = "normalized"
    ITERATING = "iterating"
    FINALIZED = "finalized"


class GeoClusterError(RuntimeError):
    """Base class for errors raised by the cluster numerics."""


class ClusterStateError(GeoClusterError):
    """Raised when a cluster operation is invoked out of order."""


class StaleBindingError(ClusterStateError):
    """Raised when storage is accessed through a binding older than its arena."""

    def __init__(self, offset: int, generation: int, current: int):
        super().__init__(
            f"binding at offset {offset} belongs to arena generation {generation}, "
            f"arena is at generation {current}; re-bind the working storage"
        )
        self.offset = offset
        self.generation = generation
        self.current = current


class ParallelDirectionError(ValueError):
    """Raised when a closed-form gradient is requested for ``Direction.BOTH``."""


class UnsupportedPrimitivePairError(ValueError):
    """Raised when a parallel constraint is built for an unsupported pair."""

    def __init__(self, first: object, second: object):
        super().__init__(f"parallel constraint between {first} and {second} is not supported")
        self.first = first
        self.second = second


class DegenerateDirectionError(ArithmeticError):
    """Raised when a parallel residual would divide by a zero norm."""


__all__ = [
    "ClusterMode",
    "ClusterPhase",
    "ClusterStateError",
    "DegenerateDirectionError",
    "GeoClusterError",
    "ParallelDirectionError",
    "StaleBindingError",
    "UnsupportedPrimitivePairError",
    "Vector",
    "VectorLike",
]
