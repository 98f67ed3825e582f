"""Tests for the in-memory session registry."""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import evaluation_payload
from canonizer.agents.evaluator import build_evaluation
from canonizer.agents.exceptions import SessionClosedError
from canonizer.app.models import ExecutionTrace, ExtractionResult, ProgressEvent, SessionStatus
from canonizer.app.sessions import SessionRegistry


def _event(stage: str, percent: int, at: datetime = None) -> ProgressEvent:
    kwargs = {"timestamp": at} if at else {}
    return ProgressEvent(stage=stage, message=f"{stage} done", progress_percent=percent, **kwargs)


@pytest.fixture
def registry(manual_clock) -> SessionRegistry:
    return SessionRegistry(retention_seconds=300, grace_seconds=30, clock=manual_clock)


def test_create_returns_distinct_processing_sessions(registry):
    first = registry.create("https://a.example")
    second = registry.create("https://b.example")

    assert first != second
    assert registry.get(first).status == SessionStatus.PROCESSING
    assert registry.active_count == 2


def test_read_unknown_session_returns_none(registry):
    assert registry.read("missing") is None
    assert registry.get("missing") is None


def test_append_to_unknown_session_is_a_noop(registry):
    assert registry.append("missing", _event("setup", 5)) is False


def test_readers_track_their_own_cursor(registry):
    sid = registry.create()
    registry.append(sid, _event("setup", 5))
    registry.append(sid, _event("capture", 25))

    early = registry.read(sid, 0)
    assert [e.stage for e in early.events] == ["setup", "capture"]
    assert early.cursor == 2
    assert early.terminal is False

    registry.append(sid, _event("analyze", 50))

    late = registry.read(sid, 1)
    assert [e.stage for e in late.events] == ["capture", "analyze"]
    assert late.cursor == 3

    caught_up = registry.read(sid, early.cursor)
    assert [e.stage for e in caught_up.events] == ["analyze"]
    assert registry.read(sid, caught_up.cursor).events == []


def test_cursor_is_clamped(registry):
    sid = registry.create()
    registry.append(sid, _event("setup", 5))

    assert registry.read(sid, 99).cursor == 1
    assert registry.read(sid, -4).cursor == 1
    assert len(registry.read(sid, -4).events) == 1


def test_observed_events_remain_a_prefix(registry):
    sid = registry.create()
    registry.append(sid, _event("setup", 5))
    registry.append(sid, _event("capture", 25))
    before = registry.read(sid).events

    registry.append(sid, _event("analyze", 50))
    after = registry.read(sid).events

    assert after[: len(before)] == before


def test_progress_never_decreases(registry):
    sid = registry.create()
    registry.append(sid, _event("evaluate", 90))
    registry.append(sid, _event("capture", 25))

    percents = [e.progress_percent for e in registry.read(sid).events]
    assert percents == [90, 90]


def test_complete_appends_terminal_event_and_result(registry, manual_clock):
    sid = registry.create()
    registry.append(sid, _event("finalize", 100))
    evaluation, _ = build_evaluation(evaluation_payload(4.6, 4.6), "brand_1")
    trace = ExecutionTrace(pipeline_version="1.0.0", brand_id="brand_1", started_at=manual_clock())
    result = ExtractionResult(
        brand_id="brand_1",
        brand_name="brand",
        source_url="https://brand.example",
        specification={"version": "1.0.0"},
        evaluation=evaluation,
        trace=trace,
        refinement="skipped",
    )

    assert registry.complete(sid, result) is True

    batch = registry.read(sid)
    last = batch.events[-1]
    assert last.stage == "complete"
    assert last.progress_percent == 100
    assert last.brand_id == "brand_1"
    assert batch.terminal is True
    assert batch.status == SessionStatus.COMPLETED
    assert registry.get(sid).result.result.brand_id == "brand_1"
    assert registry.active_count == 0


def test_fail_keeps_last_percent(registry):
    sid = registry.create()
    registry.append(sid, _event("setup", 5))
    registry.append(sid, _event("capture", 25))

    registry.fail(sid, "Analyze stage failed: model timeout")

    batch = registry.read(sid)
    last = batch.events[-1]
    assert last.stage == "error"
    assert last.message == "Analyze stage failed: model timeout"
    assert last.progress_percent == 25
    assert batch.status == SessionStatus.FAILED
    assert registry.get(sid).result.error == "Analyze stage failed: model timeout"
    assert registry.get(sid).result.result is None


def test_append_after_terminal_raises(registry):
    sid = registry.create()
    registry.fail(sid, "boom")

    with pytest.raises(SessionClosedError):
        registry.append(sid, _event("capture", 25))


def test_processing_sessions_never_expire(registry, manual_clock):
    sid = registry.create()
    registry.append(sid, _event("setup", 5))

    manual_clock.advance(3600)

    assert registry.expire() == 0
    assert registry.read(sid) is not None


def test_expiry_waits_for_retention(registry, manual_clock):
    sid = registry.create()
    registry.fail(sid, "boom")

    manual_clock.advance(299)
    assert registry.expire() == 0

    manual_clock.advance(1)
    assert registry.expire() == 1
    assert registry.read(sid) is None


def test_expiry_grants_grace_after_late_terminal_event(registry, manual_clock):
    sid = registry.create()
    manual_clock.advance(400)
    registry.append(sid, _event("error", 10, at=manual_clock()))

    manual_clock.advance(29)
    assert registry.read(sid) is not None

    manual_clock.advance(1)
    assert registry.read(sid) is None
    assert len(registry) == 0


def test_create_sweeps_expired_sessions(registry, manual_clock):
    old = registry.create()
    registry.fail(old, "boom")
    manual_clock.advance(301)

    registry.create()

    assert len(registry) == 1
    assert registry.get(old) is None


def test_sink_appends_to_bound_session(registry):
    sid = registry.create()
    sink = registry.sink(sid)

    assert sink(_event("setup", 5)) is True
    assert registry.get(sid).stage == "setup"


def test_default_clock_uses_aware_datetimes():
    registry = SessionRegistry()
    sid = registry.create()
    created = registry.get(sid).created_at
    assert created.tzinfo is not None
    assert datetime.now(timezone.utc) - created < timedelta(seconds=5)
