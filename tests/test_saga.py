"""Tests for saga step execution and compensation."""

import logging

import pytest

from balancebook.domain.errors import RollbackFailedError
from balancebook.domain.saga import Saga


def test_runs_steps_in_order():
    calls = []
    results = (
        Saga("demo")
        .step("first", lambda: calls.append("first") or 1)
        .step("second", lambda: calls.append("second") or 2)
        .run()
    )

    assert calls == ["first", "second"]
    assert results == {"first": 1, "second": 2}


def test_compensates_completed_steps_in_reverse():
    calls = []

    def boom():
        raise ValueError("boom")

    saga = Saga("demo")
    saga.step("a", lambda: calls.append("a"), lambda: calls.append("undo a"))
    saga.step("b", lambda: calls.append("b"), lambda: calls.append("undo b"))
    saga.step("c", boom, lambda: calls.append("undo c"))

    with pytest.raises(ValueError, match="boom"):
        saga.run()

    assert calls == ["a", "b", "undo b", "undo a"]


def test_steps_without_compensation_are_skipped():
    calls = []

    def boom():
        raise RuntimeError("boom")

    saga = Saga("demo")
    saga.step("a", lambda: calls.append("a"))
    saga.step("b", lambda: calls.append("b"), lambda: calls.append("undo b"))
    saga.step("c", boom)

    with pytest.raises(RuntimeError):
        saga.run()

    assert calls == ["a", "b", "undo b"]


def test_failed_compensation_raises_rollback_failed(caplog):
    def boom():
        raise RuntimeError("step failed")

    def broken_undo():
        raise OSError("undo failed")

    saga = Saga("demo")
    saga.step("a", lambda: None, broken_undo)
    saga.step("b", boom)

    with caplog.at_level(logging.WARNING, logger="balancebook.domain.saga"):
        with pytest.raises(RollbackFailedError) as excinfo:
            saga.run()

    assert "step failed" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, OSError)
    messages = [record.getMessage() for record in caplog.records]
    assert "saga_step_failed" in messages
    assert "saga_compensation_failed" in messages
