"""Quality gate and refinement controller.

A specification scoring at or above the gate ships as-is. Below it, one
refinement pass addresses only the high and critical recommendations. The
refined document replaces the original only if it validates on its own;
otherwise the original, already-evaluated specification is kept.
"""
import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from canonizer.agents.exceptions import ExtractionError, ModelUnavailableError, RefinementError
from canonizer.agents.interfaces import ModelOutput, RefinementAdapter, TokenUsage
from canonizer.agents.llm import ChatModelClient
from canonizer.agents.parsing import PayloadError, extract_json_payload
from canonizer.agents.prompts import REFINEMENT_PROMPT
from canonizer.agents.validation import SchemaViolation, validate_document
from canonizer.app.config import Settings
from canonizer.app.logger import StageLog, logger
from canonizer.app.models import QUALITY_GATE, EvaluationResult, Recommendation

REFINE_PRIORITIES = ("critical", "high")

# Blocks the refinement pass may not change
PRESERVED_KEYS = ("version", "metadata")


class RefinementState(str, Enum):
    SKIPPED = "skipped"
    REFINED = "refined"
    FAILED = "failed"


@dataclass
class RefinementDecision:
    refine: bool
    reason: str
    recommendations: List[Recommendation] = field(default_factory=list)


@dataclass
class RefinementOutcome:
    """Final specification of the refine step and how it was reached."""
    state: RefinementState
    specification: Dict[str, Any]
    reason: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    api_calls: int = 0
    improvements: int = 0
    violations: List[SchemaViolation] = field(default_factory=list)
    error: Optional[ExtractionError] = None


def actionable_recommendations(evaluation: EvaluationResult) -> List[Recommendation]:
    return [rec for rec in evaluation.recommendations if rec.priority in REFINE_PRIORITIES]


def count_improvements(original: Dict[str, Any], refined: Dict[str, Any]) -> int:
    """Count coarse improvements: added components, color groups, usage rules, accessibility detail."""
    improvements = 0

    original_components = len(original.get("components") or [])
    refined_components = len(refined.get("components") or [])
    if refined_components > original_components:
        improvements += refined_components - original_components

    original_colors = (original.get("design_tokens") or {}).get("colors") or {}
    refined_colors = (refined.get("design_tokens") or {}).get("colors") or {}
    if len(refined_colors) > len(original_colors):
        improvements += 1

    if json.dumps(refined).count('"usage_rules":') > json.dumps(original).count('"usage_rules":'):
        improvements += 1

    original_access = len(json.dumps(original.get("accessibility") or {}))
    refined_access = len(json.dumps(refined.get("accessibility") or {}))
    if refined_access > original_access + 100:
        improvements += 1

    return improvements


class RefinementController:
    """Runs the Evaluated -> {skip, refine} -> {refined, failed} state machine."""

    def __init__(self, adapter: RefinementAdapter, quality_gate: float = QUALITY_GATE):
        self.adapter = adapter
        self.quality_gate = quality_gate

    def decide(self, evaluation: EvaluationResult) -> RefinementDecision:
        score = evaluation.overall_score
        if score >= self.quality_gate:
            return RefinementDecision(False, f"Score {score:.2f} meets the quality gate ({self.quality_gate})")
        return RefinementDecision(
            True, f"Score {score:.2f} is below the quality gate ({self.quality_gate})", actionable_recommendations(evaluation)
        )

    async def run(
        self,
        specification: Dict[str, Any],
        evaluation: EvaluationResult,
        log: Optional[StageLog] = None,
    ) -> RefinementOutcome:
        log = log or StageLog("refine")
        decision = self.decide(evaluation)
        if not decision.refine:
            log.info(f"Skipping refinement: {decision.reason}")
            return RefinementOutcome(RefinementState.SKIPPED, specification, decision.reason)

        log.info(f"{decision.reason}; refining {len(decision.recommendations)} recommendation(s)")
        try:
            output = await self.adapter.refine(copy.deepcopy(specification), evaluation, decision.recommendations)
        except ExtractionError as e:
            log.warning(f"Refinement call failed, keeping original specification: {e}")
            return RefinementOutcome(
                RefinementState.FAILED, specification, "Refinement call failed",
                usage=e.usage or TokenUsage(), api_calls=0 if isinstance(e, ModelUnavailableError) else 1, error=e,
            )
        except Exception as e:
            log.error(f"Refinement raised unexpectedly, keeping original specification: {e}", exc_info=True)
            return RefinementOutcome(
                RefinementState.FAILED, specification, "Refinement call failed",
                api_calls=1, error=RefinementError(str(e)),
            )

        refined = output.data
        if isinstance(refined, dict):
            for key in PRESERVED_KEYS:
                if key in specification:
                    refined[key] = copy.deepcopy(specification[key])

        violations = validate_document(refined)
        if violations:
            log.warning(f"Refined specification failed validation with {len(violations)} violation(s); keeping original")
            for violation in violations[:10]:
                log.debug(f"Refined spec violation: {violation}")
            return RefinementOutcome(
                RefinementState.FAILED, specification, "Refined specification failed validation",
                usage=output.usage, api_calls=1, violations=violations,
                error=RefinementError("Refined specification failed validation"),
            )

        improvements = count_improvements(specification, refined)
        log.info(f"Refined specification passes validation with {improvements} improvement(s)")
        return RefinementOutcome(
            RefinementState.REFINED, refined, "Refined specification validated",
            usage=output.usage, api_calls=1, improvements=improvements,
        )


def build_refinement_prompt(
    specification: Dict[str, Any],
    evaluation: EvaluationResult,
    recommendations: List[Recommendation],
) -> str:
    dimension_lines = "\n".join(
        f"- {dim.display_name}: {dim.score:.1f}/5.0 - {dim.justification}" for dim in evaluation.dimensions
    )
    feedback = "\n\n".join(
        f"- {rec.dimension or 'general'} ({rec.priority}): {rec.issue}\n  -> {rec.suggestion}"
        for rec in recommendations
    ) or "- No high or critical recommendations were given; strengthen the lowest-scoring dimensions."
    return REFINEMENT_PROMPT.format(
        specification=json.dumps(specification, indent=2),
        overall_score=evaluation.overall_score,
        quality_band=evaluation.quality_band,
        dimension_lines=dimension_lines,
        feedback=feedback,
    )


class LangChainRefiner:
    """Asks the model for a full refined specification scoped to the given recommendations."""

    def __init__(self, client: Optional[ChatModelClient] = None, settings: Optional[Settings] = None):
        if client is None:
            settings = settings or Settings()
            client = ChatModelClient(settings, settings.refine_model, settings.refine_max_tokens)
        self.client = client

    async def refine(
        self,
        specification: Dict[str, Any],
        evaluation: EvaluationResult,
        recommendations: List[Recommendation],
    ) -> ModelOutput:
        prompt = build_refinement_prompt(specification, evaluation, recommendations)
        logger.info("Sending refinement request")
        try:
            text, usage = await self.client.complete(prompt)
        except ExtractionError:
            raise
        except Exception as e:
            raise RefinementError(f"Refinement model call failed: {e}") from e

        try:
            return ModelOutput(extract_json_payload(text), usage)
        except PayloadError as e:
            raise RefinementError(str(e), usage=usage) from e
