"""Execution trace accounting: per-stage results and the run summary."""
from datetime import datetime
from typing import Callable, List, Optional

from canonizer.agents.interfaces import TokenUsage
from canonizer.app.logger import StageLog
from canonizer.app.models import (
    Artifact,
    ExecutionTrace,
    ModelMetrics,
    StageError,
    StageResult,
    StageStatus,
    TraceSummary,
    utcnow,
)

# USD per one million tokens
INPUT_COST_PER_MILLION = 3.0
OUTPUT_COST_PER_MILLION = 15.0

STAGE_DISPLAY_NAMES = {
    "capture": "Capture",
    "analyze": "Analyze",
    "synthesize": "Synthesize",
    "evaluate": "Evaluate",
    "refine": "Refine",
}

Clock = Callable[[], datetime]


def estimate_cost(tokens_input: int, tokens_output: int) -> float:
    cost = tokens_input / 1_000_000 * INPUT_COST_PER_MILLION
    cost += tokens_output / 1_000_000 * OUTPUT_COST_PER_MILLION
    return round(cost, 4)


def _duration_ms(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))


class StageRun:
    """Times one stage and collects what becomes its StageResult."""

    def __init__(self, name: str, clock: Clock = utcnow):
        self.name = name
        self.display_name = STAGE_DISPLAY_NAMES.get(name, name.title())
        self.log = StageLog(name)
        self._clock = clock
        self.started_at = clock()
        self.artifacts: List[Artifact] = []
        self.errors: List[StageError] = []
        self.warnings: List[str] = []
        self.metrics: Optional[ModelMetrics] = None

    def add_artifact(self, name: str, type: str, size_bytes: int = 0, path: Optional[str] = None):
        self.artifacts.append(Artifact(name=name, type=type, size_bytes=size_bytes, path=path))

    def add_error(self, code: str, message: str, recoverable: bool = False):
        self.errors.append(StageError(code=code, message=message, recoverable=recoverable))

    def warn(self, message: str):
        self.warnings.append(message)
        self.log.warning(message)

    def record_usage(self, usage: Optional[TokenUsage], api_calls: int = 1, improvements: Optional[int] = None):
        usage = usage or TokenUsage()
        self.metrics = ModelMetrics(
            tokens_input=usage.input_tokens,
            tokens_output=usage.output_tokens,
            api_calls=api_calls,
            model_used=usage.model,
            improvements_made=improvements,
        )

    def finish(self, status: Optional[StageStatus] = None) -> StageResult:
        """Close the stage; status defaults to warning when warnings were recorded."""
        if status is None:
            status = StageStatus.WARNING if self.warnings else StageStatus.SUCCESS
        ended_at = self._clock()
        return StageResult(
            name=self.name,
            display_name=self.display_name,
            status=status,
            started_at=self.started_at,
            ended_at=ended_at,
            duration_ms=_duration_ms(self.started_at, ended_at),
            artifacts=self.artifacts,
            logs=self.log.entries,
            errors=self.errors,
            warnings=self.warnings,
            metrics=self.metrics,
        )


def summarize(stages: List[StageResult], status: str, extra_warnings: Optional[List[str]] = None) -> TraceSummary:
    """Compute totals over the stages of one run."""
    tokens_input = sum(stage.metrics.tokens_input for stage in stages if stage.metrics)
    tokens_output = sum(stage.metrics.tokens_output for stage in stages if stage.metrics)
    total_duration = 0
    if stages:
        total_duration = _duration_ms(stages[0].started_at, max(stage.ended_at for stage in stages))

    warnings = [warning for stage in stages for warning in stage.warnings]
    warnings.extend(extra_warnings or [])
    errors = [f"{stage.name}: {error.code}: {error.message}" for stage in stages for error in stage.errors]

    return TraceSummary(
        total_duration_ms=total_duration,
        status=status,
        total_tokens=tokens_input + tokens_output,
        tokens_input=tokens_input,
        tokens_output=tokens_output,
        estimated_cost_usd=estimate_cost(tokens_input, tokens_output),
        warnings=warnings,
        errors=errors,
    )


class TraceBuilder:
    """Accumulates StageResults in stage order for one run."""

    def __init__(self, brand_id: str, pipeline_version: str, clock: Clock = utcnow):
        self.brand_id = brand_id
        self.pipeline_version = pipeline_version
        self._clock = clock
        self.started_at = clock()
        self.stages: List[StageResult] = []
        self.warnings: List[str] = []

    def start(self, name: str) -> StageRun:
        return StageRun(name, clock=self._clock)

    def add(self, result: StageResult) -> StageResult:
        self.stages.append(result)
        return result

    def add_warning(self, message: str):
        self.warnings.append(message)

    def build(self, status: str) -> ExecutionTrace:
        return ExecutionTrace(
            pipeline_version=self.pipeline_version,
            brand_id=self.brand_id,
            started_at=self.started_at,
            completed_at=self._clock(),
            stages=list(self.stages),
            summary=summarize(self.stages, status, self.warnings),
        )
