"""Cluster frames: a shared similarity transform plus its member points.

A cluster stores each member in the local ("top local") space of its frame so
the solver only has to move the frame. Before an iteration the solver can
normalize the cluster so its global spread is of order one:

1. :meth:`ClusterFrame.bind_working_storage` chooses where the frame's pose
   parameters live (the solver's arena for free clusters, private storage for
   fixed ones),
2. :meth:`ClusterFrame.compute_scale` and :meth:`ClusterFrame.apply_scale`
   shrink the frame,
3. :meth:`ClusterFrame.recalculate` and :meth:`ClusterFrame.reset_rotation`
   run during the iteration,
4. :meth:`ClusterFrame.finish_calculation` removes the normalization again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np

from .arena import ArenaBinding, ParameterArena
from .config import get_numeric_config
from .math_utils import _as_vector, _rotation_size
from .transform import SimilarityTransform
from .types import ClusterMode, ClusterPhase, ClusterStateError, Vector, VectorLike

logger = logging.getLogger(__name__)

Storage = Union[ParameterArena, ArenaBinding]


def pose_size(dim: int) -> int:
    """Number of storage entries holding a frame: rotation, translation, scale."""

    return _rotation_size(dim) + dim + 1


def _pose_to_vector(frame: SimilarityTransform) -> Vector:
    return np.concatenate([frame.rotation, frame.translation, [frame.scaling]])


def _vector_to_pose(values: Vector, dim: int) -> SimilarityTransform:
    rsize = _rotation_size(dim)
    rotation = values[:rsize]
    translation = values[rsize : rsize + dim]
    scale = float(values[rsize + dim])
    return SimilarityTransform(rotation, translation, scale, dim=dim)


@dataclass
class MemberRecord:
    parameter_offset: int
    top_local: Vector
    current: Vector
    mode: ClusterMode


class ClusterFrame:
    """Frame and ordered members of one rigid+scale cluster."""

    def __init__(self, frame: Optional[SimilarityTransform] = None, *, dim: Optional[int] = None) -> None:
        if frame is None:
            frame = SimilarityTransform.identity(3 if dim is None else dim)
        elif dim is not None and dim != frame.dim:
            raise ValueError(f"a {frame.dim}D frame cannot start a {dim}D cluster")
        self._frame = frame.copy()
        self._dim = self._frame.dim
        self._members: List[MemberRecord] = []
        self._midpoint: Optional[Vector] = None
        self._binding: Optional[ArenaBinding] = None
        self._mode: Optional[ClusterMode] = None
        self._next_offset = 0
        self._applied_scale: Optional[float] = None
        self._phase = ClusterPhase.UNBOUND

    # ------------------------------------------------------------------
    # accessors

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def phase(self) -> ClusterPhase:
        return self._phase

    @property
    def mode(self) -> Optional[ClusterMode]:
        return self._mode

    @property
    def binding(self) -> Optional[ArenaBinding]:
        return self._binding

    @property
    def frame(self) -> SimilarityTransform:
        """Current pose, read from the bound storage when there is one."""

        if self._binding is not None:
            self._frame = _vector_to_pose(self._binding.read(), self._dim)
        return self._frame.copy()

    @property
    def members(self) -> Tuple[MemberRecord, ...]:
        return tuple(self._members)

    @property
    def midpoint(self) -> Vector:
        if self._midpoint is None:
            raise ClusterStateError("midpoint is only available after compute_scale")
        return self._midpoint.copy()

    @property
    def parameter_count(self) -> int:
        return self._next_offset

    def __len__(self) -> int:
        return len(self._members)

    # ------------------------------------------------------------------
    # storage

    def bind_working_storage(self, mode: ClusterMode, storage: Optional[Storage] = None) -> ArenaBinding:
        """Bind the frame's pose parameters to storage selected by ``mode``.

        ``ClusterMode.FIX`` uses storage private to this frame. ``ClusterMode.FREE``
        needs the solver's ``storage``, either an arena or a binding into one.

        The first bind into an arena allocates the pose block and writes the
        current frame into it. Binding again into the arena the frame already
        lives in (typically after :meth:`ParameterArena.resize` made the old
        binding stale) refreshes the binding at its existing offset and adopts
        the pose stored there, so solver updates are kept. A binding for some
        other block receives the current frame.
        """

        mode = ClusterMode(mode)
        size = pose_size(self._dim)
        previous = self._binding
        adopt = False

        if mode is ClusterMode.FIX:
            if storage is not None:
                raise ValueError("fixed clusters use private storage; do not pass an arena")
            binding = ParameterArena(size).allocate(size)
        elif isinstance(storage, ParameterArena):
            if previous is not None and previous.arena is storage:
                binding = storage.rebind(previous)
                adopt = True
            else:
                binding = storage.allocate(size)
        elif isinstance(storage, ArenaBinding):
            if storage.length != size:
                raise ValueError(f"a {self._dim}D frame needs a block of {size} entries, got {storage.length}")
            binding = storage.arena.rebind(storage)
            adopt = (
                previous is not None
                and previous.arena is storage.arena
                and previous.offset == storage.offset
            )
        else:
            raise ValueError("free clusters must be bound to the solver's parameter arena")

        if adopt:
            self._frame = _vector_to_pose(binding.read(), self._dim)
        else:
            self._frame = self._latest_frame()
            binding.write(_pose_to_vector(self._frame))
        self._binding = binding
        self._mode = mode
        if self._phase is ClusterPhase.UNBOUND:
            self._phase = ClusterPhase.POPULATING
        logger.info(
            "Bound %dD cluster with %d members to %s storage at offset %d",
            self._dim,
            len(self._members),
            mode.value,
            binding.offset,
        )
        return binding

    def _latest_frame(self) -> SimilarityTransform:
        # stale bindings still address preserved contents
        if self._binding is None:
            return self._frame.copy()
        binding = self._binding.arena.rebind(self._binding)
        return _vector_to_pose(binding.read(), self._dim)

    def _store_frame(self, frame: SimilarityTransform) -> None:
        self._frame = frame.copy()
        if self._binding is not None:
            self._binding.write(_pose_to_vector(frame))

    def _require_bound(self, operation: str) -> None:
        if self._binding is None:
            raise ClusterStateError(f"{operation} requires bind_working_storage first")

    # ------------------------------------------------------------------
    # members

    def add_member(self, global_coordinate: VectorLike) -> int:
        """Register a point given in global coordinates and return its offset."""

        self._require_bound("add_member")
        if self._applied_scale is not None:
            raise ClusterStateError("cannot add members while the cluster is normalized")
        point = _as_vector(global_coordinate, self._dim)
        frame = self.frame
        offset = self._next_offset
        record = MemberRecord(
            parameter_offset=offset,
            top_local=frame.inverse().transform_vector(point),
            current=point.copy(),
            mode=self._mode,
        )
        self._members.append(record)
        self._next_offset += self._dim
        if self._phase is ClusterPhase.FINALIZED:
            self._phase = ClusterPhase.POPULATING
        logger.debug("Added cluster member #%d at offset %d", len(self._members) - 1, offset)
        return offset

    def clear(self) -> None:
        """Drop all members and the binding; the frame itself is kept."""

        self._frame = self._latest_frame()
        logger.info("Clearing cluster with %d members", len(self._members))
        self._members = []
        self._midpoint = None
        self._next_offset = 0
        self._applied_scale = None
        self._binding = None
        self._mode = None
        self._phase = ClusterPhase.UNBOUND

    # ------------------------------------------------------------------
    # normalization

    def compute_scale(self) -> float:
        """Return the characteristic radius of the members around their midpoint.

        The midpoint is the mean of the top local coordinates. A single member
        has no spread and yields exactly ``0.0``.
        """

        self._require_bound("compute_scale")
        if not self._members:
            raise ClusterStateError("compute_scale needs at least one member")
        points = np.vstack([m.top_local for m in self._members])
        self._midpoint = points.mean(axis=0)
        if len(self._members) == 1:
            return 0.0
        distances = np.linalg.norm(points - self._midpoint, axis=1)
        scale = float(distances.mean())
        logger.debug("Cluster scale %.6g over %d members", scale, len(self._members))
        return scale

    def apply_scale(self, scale: float, use_fixed_storage: Optional[bool] = None) -> None:
        """Shrink the frame by ``scale`` so member positions become ``global / scale``.

        The scale is always changed in the bound storage. ``use_fixed_storage``
        asks for the members to be recalculated right away, as fixed clusters
        need since the solver never iterates them; it defaults to whether the
        cluster is bound in ``ClusterMode.FIX``. Otherwise members keep their
        positions until the next :meth:`recalculate`.
        """

        self._require_bound("apply_scale")
        if self._midpoint is None:
            raise ClusterStateError("apply_scale requires compute_scale first")
        if self._applied_scale is not None:
            raise ClusterStateError("cluster is already normalized; call finish_calculation first")
        if use_fixed_storage is None:
            recalc_now = self._mode is ClusterMode.FIX
        else:
            recalc_now = bool(use_fixed_storage)
        if scale < 0.0:
            raise ClusterStateError(f"cluster scale must be non-negative, got {scale}")

        factor = float(scale)
        if factor <= get_numeric_config().scale_floor:
            logger.debug("Scale %.6g at or below floor; leaving cluster unnormalized", factor)
            factor = 1.0

        frame = self.frame
        frame.scale(1.0 / factor)
        self._store_frame(frame)
        self._applied_scale = factor
        if recalc_now:
            self.recalculate()
        self._phase = ClusterPhase.NORMALIZED
        logger.info("Applied cluster scale %.6g (%s storage)", factor, self._mode.value)

    def finish_calculation(self) -> None:
        """Undo :meth:`apply_scale` and restore true global member positions."""

        self._require_bound("finish_calculation")
        if self._applied_scale is None:
            raise ClusterStateError("finish_calculation requires apply_scale first")
        frame = self.frame
        frame.scale(self._applied_scale)
        self._store_frame(frame)
        self._applied_scale = None
        self.recalculate()
        self._phase = ClusterPhase.FINALIZED
        logger.info("Finished calculation for cluster with %d members", len(self._members))

    # ------------------------------------------------------------------
    # iteration

    def reset_rotation(self, new_frame: SimilarityTransform) -> None:
        """Replace the frame while keeping every member's global position."""

        self._require_bound("reset_rotation")
        if new_frame.dim != self._dim:
            raise ValueError(f"cannot reset a {self._dim}D cluster to a {new_frame.dim}D frame")
        old = self.frame
        new_inverse = new_frame.inverse()
        for member in self._members:
            global_point = old.transform_vector(member.top_local)
            member.top_local = new_inverse.transform_vector(global_point)
            member.current = global_point
        self._store_frame(new_frame)
        if self._phase is ClusterPhase.NORMALIZED:
            self._phase = ClusterPhase.ITERATING
        logger.info("Reset rotation of cluster with %d members", len(self._members))

    def recalculate(self, frame_override: Optional[SimilarityTransform] = None) -> None:
        """Recompute ``current`` for every member from its top local coordinate.

        ``frame_override`` evaluates against another frame without storing it.
        """

        if frame_override is None:
            self._require_bound("recalculate")
            frame = self.frame
        else:
            if frame_override.dim != self._dim:
                raise ValueError(f"cannot evaluate a {self._dim}D cluster with a {frame_override.dim}D frame")
            frame = frame_override
        for member in self._members:
            member.current = frame.transform_vector(member.top_local)
        if self._phase is ClusterPhase.NORMALIZED:
            self._phase = ClusterPhase.ITERATING


__all__ = ["ClusterFrame", "MemberRecord", "pose_size"]
