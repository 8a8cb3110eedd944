"""Unit tests for StageExecutor retry accounting."""
from unittest.mock import AsyncMock
import pytest
from classpilot.actions.base import ActionResult
from classpilot.core.workflow import StageName, WorkflowStage
from conftest import ScriptedAction, make_engine

A = StageName.INITIALIZATION
B = StageName.OPEN_TARGET


def _engine(a_outcomes, b_outcomes=(True,)):
    return make_engine({
        A: ScriptedAction(A, list(a_outcomes), advance_to=WorkflowStage.INITIALIZED),
        B: ScriptedAction(B, list(b_outcomes)),
    })


@pytest.mark.asyncio
async def test_exhausted_stage_never_invokes_action():
    engine = _engine([True])
    action = engine.registry.get(A)
    action.run = AsyncMock(return_value=ActionResult(A, True, "should not run"))
    engine.topology[A].current_retries = engine.topology[A].max_retries

    ok = await engine.executor.attempt_stage(A)

    assert ok is False
    action.run.assert_not_called()
    assert engine.workflow.stage is WorkflowStage.FAILED
    assert engine.topology[A].last_attempt_at is None


@pytest.mark.asyncio
async def test_success_sets_success_fields_and_clears_error():
    engine = _engine([False, True])
    await engine.executor.attempt_stage(A)
    assert engine.topology[A].last_error == "Error in initialization: scripted failure"

    ok = await engine.executor.attempt_stage(A)

    record = engine.topology[A]
    assert ok is True
    assert record.succeeded
    assert record.last_error is None
    assert record.last_success_at is not None
    assert record.last_attempt_at is not None
    assert engine.workflow.stage is WorkflowStage.INITIALIZED


@pytest.mark.asyncio
async def test_failure_increments_retries_by_exactly_one():
    engine = _engine([False])
    ok = await engine.executor.attempt_stage(A)

    record = engine.topology[A]
    assert ok is False
    assert record.current_retries == 1
    assert record.succeeded is False
    assert engine.workflow.stage is WorkflowStage.INITIAL


@pytest.mark.asyncio
async def test_exception_is_captured_not_raised():
    engine = _engine([RuntimeError("selector vanished")])

    ok = await engine.executor.attempt_stage(A)

    record = engine.topology[A]
    assert ok is False
    assert record.current_retries == 1
    assert record.last_error == "Error in initialization: selector vanished"


@pytest.mark.asyncio
async def test_spending_last_retry_moves_to_failed():
    engine = _engine([False])
    await engine.executor.attempt_stage(A)
    assert engine.workflow.stage is WorkflowStage.INITIAL

    await engine.executor.attempt_stage(A)

    assert engine.topology[A].current_retries == engine.topology[A].max_retries
    assert engine.workflow.stage is WorkflowStage.FAILED


@pytest.mark.asyncio
async def test_attempt_hook_reports_outcomes():
    engine = _engine([False, True])
    seen = []
    engine.executor.on_attempt = lambda name, ok: seen.append((name, ok))

    await engine.executor.attempt_stage(A)
    await engine.executor.attempt_stage(A)

    assert seen == [(A, False), (A, True)]


def test_registry_must_cover_topology():
    with pytest.raises(ValueError, match="openTarget"):
        make_engine({A: ScriptedAction(A, [True])})
