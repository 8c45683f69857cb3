"""Contiguous parameter storage shared between a solver and its clusters."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .types import StaleBindingError, Vector, VectorLike

logger = logging.getLogger(__name__)


class ParameterArena:
    """Owns a float64 buffer handed out in blocks addressed by offset.

    Blocks are never exposed as views, so growing the buffer to satisfy
    :meth:`allocate` keeps every binding valid. An explicit :meth:`resize` is
    the solver announcing a reallocation: it bumps :attr:`generation`, which
    makes every earlier binding stale until it is refreshed with
    :meth:`rebind`. Block contents survive both.
    """

    def __init__(self, size: int = 0) -> None:
        if size < 0:
            raise ValueError("arena size must be non-negative")
        self._data = np.zeros(int(size), dtype=float)
        self._used = 0
        self._generation = 0

    @property
    def size(self) -> int:
        return int(self._data.shape[0])

    @property
    def used(self) -> int:
        return self._used

    @property
    def generation(self) -> int:
        return self._generation

    def _grow(self, size: int) -> None:
        if size < self._used:
            raise ValueError(f"cannot shrink arena below its {self._used} allocated entries")
        data = np.zeros(int(size), dtype=float)
        data[: self._used] = self._data[: self._used]
        self._data = data

    def resize(self, size: int) -> None:
        self._grow(size)
        self._generation += 1
        logger.debug("Arena resized to %d entries (generation %d)", size, self._generation)

    def allocate(self, length: int) -> "ArenaBinding":
        """Reserve ``length`` entries and return a binding for them."""

        if length <= 0:
            raise ValueError("block length must be positive")
        needed = self._used + length
        if needed > self.size:
            self._grow(max(needed, 2 * self.size))
        offset = self._used
        self._used = needed
        return ArenaBinding(self, offset, length, self._generation)

    def rebind(self, binding: "ArenaBinding") -> "ArenaBinding":
        """Return ``binding`` refreshed to the current generation, same offset."""

        if binding.arena is not self:
            raise ValueError("binding belongs to a different arena")
        if binding.offset + binding.length > self._used:
            raise ValueError(f"block at offset {binding.offset} is outside the allocated entries")
        if not binding.is_stale:
            return binding
        logger.debug("Refreshed binding at offset %d to generation %d", binding.offset, self._generation)
        return ArenaBinding(self, binding.offset, binding.length, self._generation)

    def values(self) -> Vector:
        """Return a copy of the allocated part of the buffer."""

        return self._data[: self._used].copy()

    def assign(self, values: VectorLike) -> None:
        """Overwrite the allocated part of the buffer, e.g. with a solver step."""

        arr = np.asarray(values, dtype=float).reshape(-1)
        if arr.shape[0] != self._used:
            raise ValueError(f"expected {self._used} values, got {arr.shape[0]}")
        self._data[: self._used] = arr

    def _read(self, offset: int, length: int) -> Vector:
        return self._data[offset : offset + length].copy()

    def _write(self, offset: int, values: Vector) -> None:
        self._data[offset : offset + values.shape[0]] = values


@dataclass(frozen=True)
class ArenaBinding:
    """Offset/length record of a block inside a :class:`ParameterArena`."""

    arena: ParameterArena
    offset: int
    length: int
    generation: int

    @property
    def is_stale(self) -> bool:
        return self.generation != self.arena.generation

    def _check(self) -> None:
        if self.is_stale:
            raise StaleBindingError(self.offset, self.generation, self.arena.generation)

    def read(self) -> Vector:
        self._check()
        return self.arena._read(self.offset, self.length)

    def write(self, values: VectorLike) -> None:
        self._check()
        arr = np.asarray(values, dtype=float).reshape(-1)
        if arr.shape[0] != self.length:
            raise ValueError(f"block holds {self.length} values, got {arr.shape[0]}")
        self.arena._write(self.offset, arr)


__all__ = ["ArenaBinding", "ParameterArena"]
