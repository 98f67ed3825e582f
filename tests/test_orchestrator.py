"""Tests for the extraction pipeline orchestrator."""
import pytest

from conftest import (
    HIGH_RECOMMENDATION,
    FakeAnalyzer,
    FakeCapture,
    FakeEvaluator,
    FakeRefiner,
    evaluation_payload,
    make_pipeline,
    minimal_tokens,
)
from canonizer.agents.exceptions import AnalysisError, CaptureError, EvaluationError, PipelineError
from canonizer.agents.orchestrator import STAGE_PROGRESS, brand_label, dominant_colors, make_brand_id
from canonizer.app.models import StageStatus
from canonizer.app.storage import BrandStore


class EventCollector:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def stages(self):
        return [event.stage for event in self.events]

    @property
    def percents(self):
        return [event.progress_percent for event in self.events]


def test_brand_label_and_id(clock):
    assert brand_label("https://www.Stripe.com/payments") == "stripe"
    assert brand_label("https://my-brand.example.org") == "my_brand"
    assert brand_label("not a url") == "brand"

    brand_id = make_brand_id("https://stripe.com", clock())
    assert brand_id.startswith("stripe_2024_05_01_")
    assert len(brand_id.rsplit("_", 1)[1]) == 8


def test_dominant_colors_are_unique_and_capped():
    spec = {"design_tokens": {"colors": {
        "primary": {"value": "#111111"},
        "secondary": {"value": "#111111"},
        "accent": {"value": "#222222"},
        "neutrals": {"gray": {str(step): {"value": f"#{step:06d}"} for step in (100, 200, 300, 400)}},
    }}}
    assert dominant_colors(spec) == ["#111111", "#222222", "#000100", "#000200", "#000300"]


@pytest.mark.asyncio
async def test_minimal_tokens_low_score_refined_run(clock):
    """Missing secondary color, score 3.8, refinement fills it from real data."""
    analyzer = FakeAnalyzer(minimal_tokens())
    evaluator = FakeEvaluator(evaluation_payload(3.8, 3.8, [HIGH_RECOMMENDATION]))
    refiner = FakeRefiner("fix")
    pipeline = make_pipeline(analyzer=analyzer, evaluator=evaluator, refiner=refiner, clock=clock)
    events = EventCollector()

    result = await pipeline.run("https://www.example.com", ["bold"], progress=events)

    synth = result.trace.stages[2]
    assert synth.status == StageStatus.WARNING
    assert any("No secondary color observed" in warning for warning in synth.warnings)
    assert evaluator.warnings_seen == synth.warnings

    assert result.evaluation.overall_score == 3.8
    assert result.evaluation.quality_band == "good"
    assert result.refinement == "refined"
    assert result.specification["design_tokens"]["colors"]["secondary"]["value"] == "#0a2540"

    stages = result.trace.stages
    assert [stage.name for stage in stages] == ["capture", "analyze", "synthesize", "evaluate", "refine"]
    assert all(stage.status != StageStatus.SKIPPED for stage in stages)
    api_calls = sum(stage.metrics.api_calls for stage in stages if stage.metrics)
    assert api_calls == 3

    summary = result.trace.summary
    assert summary.status == "success"
    assert summary.total_tokens == 1200 + 800 + 900 + 400 + 1500 + 2500
    assert summary.estimated_cost_usd == pytest.approx(0.0663)
    assert summary.total_duration_ms > 0

    assert events.stages == ["setup", "capture", "analyze", "synthesize", "evaluate", "refine", "finalize"]
    assert events.percents == [5, 25, 50, 75, 90, 95, 100]
    assert events.events[-1].brand_id == result.brand_id
    assert result.metadata["execution_summary"]["refinement"] == "refined"


@pytest.mark.asyncio
async def test_high_score_skips_refinement(clock):
    refiner = FakeRefiner()
    pipeline = make_pipeline(refiner=refiner, clock=clock)

    result = await pipeline.run("https://stripe.com")

    refine = result.trace.stages[-1]
    assert refine.status == StageStatus.SKIPPED
    assert refine.metrics.tokens_input == 0
    assert refine.metrics.api_calls == 0
    assert refiner.calls == 0
    assert result.refinement == "skipped"
    assert result.evaluation.quality_band == "excellent"
    assert result.trace.summary.total_tokens == 1200 + 800 + 900 + 400


@pytest.mark.asyncio
async def test_failed_refinement_is_a_warning_with_original_spec(clock):
    evaluator = FakeEvaluator(evaluation_payload(3.0, 3.0, [HIGH_RECOMMENDATION]))
    pipeline = make_pipeline(evaluator=evaluator, refiner=FakeRefiner("break"), clock=clock)

    result = await pipeline.run("https://stripe.com")

    refine = result.trace.stages[-1]
    assert refine.status == StageStatus.WARNING
    assert refine.errors[0].recoverable is True
    assert result.refinement == "failed"
    assert result.trace.summary.status == "success"
    assert result.specification["design_tokens"]["colors"]["primary"]["value"] == "#635bff"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failing,expected_stages,error_code",
    [
        ("capture", ["capture"], "CAPTURE_ERROR"),
        ("analyze", ["capture", "analyze"], "ANALYSIS_ERROR"),
        ("evaluate", ["capture", "analyze", "synthesize", "evaluate"], "EVALUATION_ERROR"),
    ],
)
async def test_fatal_stage_failure_short_circuits(clock, failing, expected_stages, error_code):
    capture = FakeCapture(error=CaptureError("Timeout 30000ms exceeded") if failing == "capture" else None)
    analyzer = FakeAnalyzer(error=AnalysisError("model refused") if failing == "analyze" else None)
    evaluator = FakeEvaluator(error=EvaluationError("bad reply") if failing == "evaluate" else None)
    refiner = FakeRefiner()
    pipeline = make_pipeline(capture=capture, analyzer=analyzer, evaluator=evaluator, refiner=refiner, clock=clock)
    events = EventCollector()

    with pytest.raises(PipelineError) as excinfo:
        await pipeline.run("https://stripe.com", progress=events)

    error = excinfo.value
    assert error.stage == failing
    trace = error.trace
    assert [stage.name for stage in trace.stages] == expected_stages
    assert trace.stages[-1].status == StageStatus.FAILED
    assert trace.stages[-1].errors[0].code == error_code
    assert trace.summary.status == "failed"
    assert refiner.calls == 0
    assert "finalize" not in events.stages
    assert events.percents == sorted(events.percents)


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_is_fatal(clock):
    pipeline = make_pipeline(analyzer=FakeAnalyzer(error=KeyError("content")), clock=clock)

    with pytest.raises(PipelineError) as excinfo:
        await pipeline.run("https://stripe.com")

    assert excinfo.value.trace.stages[-1].errors[0].code == "ANALYZE_ERROR"


@pytest.mark.asyncio
async def test_async_progress_sinks_are_awaited(clock):
    seen = []

    async def sink(event):
        seen.append(event.stage)

    await make_pipeline(clock=clock).run("https://stripe.com", progress=sink)

    assert seen[-1] == "finalize"
    assert len(seen) == len(STAGE_PROGRESS)


@pytest.mark.asyncio
async def test_results_are_persisted(tmp_path, clock):
    store = BrandStore(str(tmp_path))
    pipeline = make_pipeline(store=store, clock=clock)
    events = EventCollector()

    result = await pipeline.run("https://stripe.com", progress=events)

    brand_dir = tmp_path / "brands" / result.brand_id
    assert (brand_dir / "reports" / "brand_spec.json").is_file()
    assert (brand_dir / "captures" / "screenshots" / "hero.png").read_bytes() == b"\x89PNG hero"
    assert (brand_dir / "analysis" / "brand_tokens.json").is_file()
    assert events.stages[-2:] == ["finalize", "finalize"]


@pytest.mark.asyncio
async def test_persistence_failure_becomes_warning(clock):
    class BrokenStore:
        def save(self, *args, **kwargs):
            raise OSError("disk full")

    result = await make_pipeline(store=BrokenStore(), clock=clock).run("https://stripe.com")

    assert result.trace.summary.status == "success"
    assert any("disk full" in warning for warning in result.trace.summary.warnings)


def test_describe_lists_stages():
    description = make_pipeline().describe()
    assert description["stages"] == ["capture", "analyze", "synthesize", "evaluate", "refine"]


@pytest.mark.asyncio
async def test_loosely_typed_analysis_output_is_not_fatal(clock):
    analyzer = FakeAnalyzer({"colors": ["#ff5500"], "brand_essence": "A bold brand", "typography": "Inter"})
    pipeline = make_pipeline(analyzer=analyzer, clock=clock)

    result = await pipeline.run("https://stripe.com")

    synth = result.trace.stages[2]
    assert synth.status == StageStatus.WARNING
    assert "Ignoring 'colors' in brand tokens: expected an object, got list" in synth.warnings
    assert result.specification["design_tokens"]["colors"]["primary"]["value"] == "#000000"
    assert result.trace.summary.status == "success"


@pytest.mark.asyncio
async def test_unusable_evaluation_reply_still_counts_tokens(clock):
    payload = evaluation_payload(4.0)
    payload["dimensions"][0]["evidence"] = 5
    pipeline = make_pipeline(evaluator=FakeEvaluator(payload), clock=clock)

    with pytest.raises(PipelineError) as excinfo:
        await pipeline.run("https://stripe.com")

    evaluate = excinfo.value.trace.stages[-1]
    assert evaluate.name == "evaluate"
    assert evaluate.status == StageStatus.FAILED
    assert evaluate.metrics.tokens_input == 900
    assert evaluate.metrics.tokens_output == 400
    assert evaluate.metrics.api_calls == 1
    assert excinfo.value.trace.summary.total_tokens == 1200 + 800 + 900 + 400
