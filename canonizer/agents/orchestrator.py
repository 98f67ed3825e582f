"""Extraction pipeline orchestrator.

Runs Capture -> Analyze -> Synthesize -> Evaluate -> Refine -> Finalize for one
request. Each stage gets only the previous stage's output; every transition is
pushed to the progress sink with a percent fixed by stage name. A fatal stage
failure raises ``PipelineError`` carrying the partial trace.
"""
import asyncio
import inspect
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from canonizer.agents.evaluator import build_evaluation
from canonizer.agents.exceptions import PipelineError
from canonizer.agents.interfaces import (
    AnalysisAdapter,
    CaptureAdapter,
    EvaluationAdapter,
    ProgressSink,
    RefinementAdapter,
)
from canonizer.agents.refiner import RefinementController, RefinementState
from canonizer.agents.synthesizer import SynthesisResult, Synthesizer
from canonizer.agents.trace import Clock, StageRun, TraceBuilder
from canonizer.app.config import PIPELINE_VERSION
from canonizer.app.logger import logger
from canonizer.app.models import (
    EvaluationResult,
    ExecutionTrace,
    ExtractionResult,
    ProgressEvent,
    StageStatus,
    utcnow,
)
from canonizer.app.storage import BrandStore

STAGE_PROGRESS = {
    "setup": 5,
    "capture": 25,
    "analyze": 50,
    "synthesize": 75,
    "evaluate": 90,
    "refine": 95,
    "finalize": 100,
}

PIPELINE_STAGES = ("capture", "analyze", "synthesize", "evaluate", "refine")


def brand_label(url: str) -> str:
    """First hostname label with ``www.`` dropped, reduced to [A-Za-z0-9_]."""
    hostname = (urlparse(url).hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    label = hostname.split(".")[0]
    label = "".join(ch if ch.isalnum() else "_" for ch in label)
    return label or "brand"


def make_brand_id(url: str, now: datetime) -> str:
    return f"{brand_label(url)}_{now.strftime('%Y_%m_%d')}_{uuid.uuid4().hex[:8]}"


def _top_dimensions(evaluation: EvaluationResult, strongest: bool) -> List[str]:
    ordered = sorted(evaluation.dimensions, key=lambda dim: dim.score, reverse=strongest)
    return [dim.display_name for dim in ordered[:2]]


def dominant_colors(specification: Dict[str, Any]) -> List[str]:
    """Up to five colors from the specification, brand roles first."""
    colors = ((specification.get("design_tokens") or {}).get("colors")) or {}
    values = []
    for role in ("primary", "secondary", "accent"):
        token = colors.get(role)
        if isinstance(token, dict) and token.get("value"):
            values.append(token["value"])
    grays = ((colors.get("neutrals") or {}).get("gray")) or {}
    for token in grays.values():
        if isinstance(token, dict) and token.get("value"):
            values.append(token["value"])
    unique = []
    for value in values:
        if value not in unique:
            unique.append(value)
    return unique[:5]


def build_metadata(
    specification: Dict[str, Any],
    evaluation: EvaluationResult,
    trace: ExecutionTrace,
    refinement: RefinementState,
    adjectives: List[str],
) -> Dict[str, Any]:
    """Summary document listed for stored brands."""
    spec_meta = specification.get("metadata") or {}
    essence = specification.get("brand_essence") or {}
    primary_font = (
        ((specification.get("design_tokens") or {}).get("typography") or {}).get("font_families") or {}
    ).get("primary") or {}

    tags = [essence["tone"]] if essence.get("tone") else []
    tags.extend((essence.get("adjectives") or [])[:3])

    summary = trace.summary
    return {
        "brand_id": trace.brand_id,
        "brand_name": spec_meta.get("brand_name"),
        "source_url": spec_meta.get("source_url"),
        "extracted_at": trace.started_at.isoformat(),
        "status": "completed",
        "evaluation_summary": {
            "overall_score": evaluation.overall_score,
            "quality_band": evaluation.quality_band,
            "top_strengths": _top_dimensions(evaluation, strongest=True),
            "top_weaknesses": _top_dimensions(evaluation, strongest=False),
        },
        "preview": {
            "dominant_colors": dominant_colors(specification),
            "primary_font": primary_font.get("name") or "Unknown",
            "screenshot_thumbnail": "captures/screenshots/hero.png",
        },
        "execution_summary": {
            "total_duration_ms": summary.total_duration_ms if summary else 0,
            "total_tokens": summary.total_tokens if summary else 0,
            "estimated_cost_usd": summary.estimated_cost_usd if summary else 0.0,
            "refinement": refinement.value,
        },
        "adjectives": adjectives,
        "tags": tags,
    }


class ExtractionPipeline:
    """Sequences the extraction stages for one request at a time."""

    def __init__(
        self,
        capture: CaptureAdapter,
        analyzer: AnalysisAdapter,
        evaluator: EvaluationAdapter,
        refiner: RefinementAdapter,
        store: Optional[BrandStore] = None,
        synthesizer: Optional[Synthesizer] = None,
        clock: Clock = utcnow,
        pipeline_version: str = PIPELINE_VERSION,
    ):
        self.capture = capture
        self.analyzer = analyzer
        self.evaluator = evaluator
        self.refinement = RefinementController(refiner)
        self.store = store
        self.synthesizer = synthesizer or Synthesizer()
        self.clock = clock
        self.pipeline_version = pipeline_version

    async def _emit(self, progress: Optional[ProgressSink], stage: str, message: str, brand_id: Optional[str] = None):
        logger.info(f"[{stage}] {message}")
        if progress is None:
            return
        event = ProgressEvent(
            stage=stage,
            message=message,
            progress_percent=STAGE_PROGRESS[stage],
            timestamp=self.clock(),
            brand_id=brand_id,
        )
        result = progress(event)
        if inspect.isawaitable(result):
            await result

    def _fail(self, trace: TraceBuilder, run: StageRun, error: Exception) -> PipelineError:
        """Close ``run`` as failed and wrap the error with the partial trace."""
        code = getattr(error, "error_code", f"{run.name.upper()}_ERROR")
        message = getattr(error, "message", None) or str(error)
        usage = getattr(error, "usage", None)
        if usage is not None:
            run.record_usage(usage)
        run.add_error(code, message, recoverable=False)
        run.log.error(f"{run.display_name} failed: {message}")
        trace.add(run.finish(StageStatus.FAILED))
        return PipelineError(run.name, f"{run.display_name} stage failed: {message}", trace.build("failed"))

    async def run(
        self,
        url: str,
        adjectives: Optional[List[str]] = None,
        progress: Optional[ProgressSink] = None,
    ) -> ExtractionResult:
        """Run every stage for ``url``.

        Raises:
            PipelineError: when capture, analysis, synthesis or evaluation fails
        """
        adjectives = list(adjectives or [])
        started_at = self.clock()
        brand_id = make_brand_id(url, started_at)
        brand_name = brand_label(url)
        trace = TraceBuilder(brand_id, self.pipeline_version, clock=self.clock)

        logger.info(f"Starting brand extraction for {url} (brand id {brand_id})")
        await self._emit(progress, "setup", f"Preparing extraction {brand_id}")

        # Stage 1: Capture
        run = trace.start("capture")
        run.log.info(f"Capturing {url}")
        try:
            capture = await self.capture.capture(url)
        except Exception as e:
            raise self._fail(trace, run, e) from e
        for shot in capture.screenshots:
            run.add_artifact(shot.name, shot.media_type, len(shot.data))
        trace.add(run.finish())
        await self._emit(progress, "capture", f"Captured {len(capture.screenshots)} screenshots")

        # Stage 2: Analyze
        run = trace.start("analyze")
        run.log.info("Analyzing screenshots with the vision model")
        try:
            analysis = await self.analyzer.analyze(capture, adjectives)
        except Exception as e:
            raise self._fail(trace, run, e) from e
        raw_tokens = analysis.data
        run.record_usage(analysis.usage)
        run.add_artifact("brand_tokens.json", "json")
        run.log.info(
            f"Analysis response received ({analysis.usage.input_tokens} input tokens, "
            f"{analysis.usage.output_tokens} output tokens)"
        )
        trace.add(run.finish())
        total = analysis.usage.input_tokens + analysis.usage.output_tokens
        await self._emit(progress, "analyze", f"Analysis complete ({total} tokens)")

        # Stage 3: Synthesize
        run = trace.start("synthesize")
        metadata = {
            "brand_id": brand_id,
            "brand_name": brand_name,
            "source_url": url,
            "extracted_at": started_at.isoformat(),
            "extraction_duration_ms": int((run.started_at - started_at).total_seconds() * 1000),
            "adjectives": adjectives,
        }
        try:
            synthesis: SynthesisResult = self.synthesizer.synthesize(raw_tokens, metadata, run.log)
        except Exception as e:
            raise self._fail(trace, run, e) from e
        run.warnings.extend(synthesis.warnings)
        run.add_artifact("brand_spec.json", "json")
        trace.add(run.finish())
        if synthesis.warnings:
            await self._emit(progress, "synthesize", f"Synthesis complete with {len(synthesis.warnings)} warnings")
        else:
            await self._emit(progress, "synthesize", "Brand specification synthesized and validated")

        # Stage 4: Evaluate
        run = trace.start("evaluate")
        run.log.info("Evaluating brand specification quality")
        try:
            output = await self.evaluator.evaluate(synthesis.specification, synthesis.warnings or None)
        except Exception as e:
            raise self._fail(trace, run, e) from e
        run.record_usage(output.usage)
        try:
            evaluation, notes = build_evaluation(output.data, brand_id, output.usage.model)
        except Exception as e:
            raise self._fail(trace, run, e) from e
        for note in notes:
            run.warn(note)
        run.add_artifact("evaluation.json", "json")
        trace.add(run.finish())
        await self._emit(
            progress,
            "evaluate",
            f"Evaluation complete - Overall score: {evaluation.overall_score:.2f}/5.0 ({evaluation.quality_band})",
        )

        # Stage 5: Refine (conditional, never fatal)
        run = trace.start("refine")
        outcome = await self.refinement.run(synthesis.specification, evaluation, run.log)
        specification = outcome.specification
        if outcome.state == RefinementState.SKIPPED:
            run.record_usage(None, api_calls=0, improvements=0)
            trace.add(run.finish(StageStatus.SKIPPED))
            await self._emit(progress, "refine", f"Refinement skipped - {outcome.reason}")
        elif outcome.state == RefinementState.REFINED:
            run.record_usage(outcome.usage, api_calls=outcome.api_calls, improvements=outcome.improvements)
            run.add_artifact("brand_spec.json (refined)", "json")
            trace.add(run.finish(StageStatus.SUCCESS))
            await self._emit(progress, "refine", f"Refinement complete - Made {outcome.improvements} improvements")
        else:
            run.record_usage(outcome.usage, api_calls=outcome.api_calls, improvements=0)
            error = outcome.error
            run.add_error(
                getattr(error, "error_code", "REFINEMENT_ERROR"),
                getattr(error, "message", outcome.reason),
                recoverable=True,
            )
            run.warn(f"{outcome.reason}; using original specification")
            trace.add(run.finish(StageStatus.WARNING))
            await self._emit(progress, "refine", "Refinement failed - using original specification")

        # Finalize
        execution_trace = trace.build("success")
        result_metadata = build_metadata(specification, evaluation, execution_trace, outcome.state, adjectives)
        if self.store is not None:
            await self._emit(progress, "finalize", "Saving extraction artifacts...", brand_id)
            try:
                await asyncio.to_thread(
                    self.store.save,
                    brand_id,
                    specification,
                    evaluation,
                    execution_trace,
                    result_metadata,
                    raw_tokens,
                    capture.screenshots,
                )
            except Exception as e:
                message = f"Could not persist extraction artifacts: {e}"
                logger.warning(message)
                execution_trace.summary.warnings.append(message)

        await self._emit(progress, "finalize", "Brand extraction complete!", brand_id)
        summary = execution_trace.summary
        logger.info(
            f"Brand extraction {brand_id} completed in {summary.total_duration_ms}ms, "
            f"{summary.total_tokens} tokens, ${summary.estimated_cost_usd:.4f}, "
            f"score {evaluation.overall_score:.2f}/5.0 ({evaluation.quality_band})"
        )

        return ExtractionResult(
            brand_id=brand_id,
            brand_name=brand_name,
            source_url=url,
            specification=specification,
            evaluation=evaluation,
            trace=execution_trace,
            refinement=outcome.state.value,
            metadata=result_metadata,
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "version": self.pipeline_version,
            "available": True,
            "stages": list(PIPELINE_STAGES),
        }
