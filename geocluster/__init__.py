"""Numerical core of a geometric constraint solver.

Similarity transforms, cluster frames with scale normalization, and the
parallelism constraint kernel.
"""

import logging

from .arena import ArenaBinding, ParameterArena
from .cluster import ClusterFrame, MemberRecord, pose_size
from .config import NumericConfig, get_numeric_config, set_numeric_config
from .parallel import (
    BlockLayout,
    Direction,
    PRIMITIVE_LAYOUTS,
    ParallelConstraint,
    PrimitiveKind,
    SUPPORTED_PAIRS,
    full_gradient_wrt_first,
    full_gradient_wrt_second,
    gradient_wrt_first,
    gradient_wrt_second,
    residual,
)
from .transform import SimilarityTransform, compose
from .types import (
    ClusterMode,
    ClusterPhase,
    ClusterStateError,
    DegenerateDirectionError,
    GeoClusterError,
    ParallelDirectionError,
    StaleBindingError,
    UnsupportedPrimitivePairError,
)

if not logging.getLogger().handlers:  # pragma: no cover - depends on host application
    logging.basicConfig(level=logging.WARNING)

__all__ = [
    'ArenaBinding',
    'BlockLayout',
    'ClusterFrame',
    'ClusterMode',
    'ClusterPhase',
    'ClusterStateError',
    'DegenerateDirectionError',
    'Direction',
    'GeoClusterError',
    'MemberRecord',
    'NumericConfig',
    'PRIMITIVE_LAYOUTS',
    'ParallelConstraint',
    'ParallelDirectionError',
    'ParameterArena',
    'PrimitiveKind',
    'SUPPORTED_PAIRS',
    'SimilarityTransform',
    'StaleBindingError',
    'UnsupportedPrimitivePairError',
    'compose',
    'full_gradient_wrt_first',
    'full_gradient_wrt_second',
    'get_numeric_config',
    'gradient_wrt_first',
    'gradient_wrt_second',
    'pose_size',
    'residual',
    'set_numeric_config',
]
