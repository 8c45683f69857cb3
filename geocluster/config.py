"""Configuration helpers for the cluster numerics."""

from __future__ import annotations

import copy
from dataclasses import dataclass


@dataclass
class NumericConfig:
    """Process-wide numeric tolerances."""

    approx_tol: float = 1e-10
    # scales at or below this floor leave the cluster unnormalized
    scale_floor: float = 0.0
    check_degenerate: bool = False


_NUMERIC_CONFIG = NumericConfig()


def get_numeric_config() -> NumericConfig:
    return copy.deepcopy(_NUMERIC_CONFIG)


def set_numeric_config(config: NumericConfig) -> None:
    global _NUMERIC_CONFIG
    _NUMERIC_CONFIG = copy.deepcopy(config)


__all__ = ["NumericConfig", "get_numeric_config", "set_numeric_config"]
