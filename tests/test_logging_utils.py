import logging

import numpy as np
import pytest

from geocluster import Direction, residual
from geocluster.logging_utils import _safe_repr, apply_debug_logging, debug_log_call


def test_kernel_calls_are_traced_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="geocluster.parallel")

    residual([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], Direction.SAME)

    messages = [record.getMessage() for record in caplog.records]
    assert any(msg.startswith("Entering residual(") for msg in messages)
    assert any("Direction.SAME" in msg for msg in messages)
    assert any(msg.startswith("Exiting residual -> 1.414") for msg in messages)


def test_kernel_calls_are_silent_above_debug(caplog):
    caplog.set_level(logging.INFO, logger="geocluster.parallel")
    residual([1.0, 0.0, 0.0], [1.0, 0.0, 0.0], Direction.SAME)
    assert not [r for r in caplog.records if r.name == "geocluster.parallel"]


def test_decorator_logs_exceptions_and_reraises(caplog):
    logger = logging.getLogger("tests.trace")
    caplog.set_level(logging.DEBUG, logger="tests.trace")

    @debug_log_call(logger)
    def explode():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        explode()
    assert any(record.getMessage().startswith("Exception in") for record in caplog.records)


def test_decorator_is_idempotent():
    logger = logging.getLogger("tests.trace")

    def func():
        return 1

    once = debug_log_call(logger)(func)
    assert debug_log_call(logger)(once) is once


def test_apply_debug_logging_skips_private_names():
    def public():
        return 1

    def _private():
        return 2

    public.__module__ = "tests.fake"
    _private.__module__ = "tests.fake"
    namespace = {"__name__": "tests.fake", "public": public, "_private": _private}

    apply_debug_logging(namespace)

    assert getattr(namespace["public"], "_debug_logging_wrapped", False)
    assert namespace["_private"] is _private


def test_safe_repr_summarizes_arrays():
    assert _safe_repr(np.arange(3.0)) == "ndarray(shape=(3,)) [0. 1. 2.]"
    assert _safe_repr(np.arange(100.0)) == "ndarray(shape=(100,)) min=0 max=99"
    assert _safe_repr(Direction.BOTH) == "Direction.BOTH"
