"""Evaluation adapter and the normalisation of raw evaluation payloads.

The adapter's score and weights are trusted, but its payload is completed
before use: missing dimensions are filled with a neutral score, a missing
overall score is recomputed from the weights, and recommendations are ordered
by priority. The quality band is always derived from the overall score.
"""
import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from canonizer.agents.exceptions import EvaluationError, ExtractionError
from canonizer.agents.interfaces import ModelOutput
from canonizer.agents.llm import ChatModelClient
from canonizer.agents.parsing import PayloadError, extract_json_payload
from canonizer.agents.prompts import EVALUATION_PROMPT
from canonizer.app.config import Settings
from canonizer.app.logger import logger
from canonizer.app.models import DIMENSIONS, PRIORITY_ORDER, EvaluationResult, Recommendation

NEUTRAL_SCORE = 3.0


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_dimensions(raw: Any, notes: List[str]) -> List[Dict[str, Any]]:
    """Return exactly the six rubric dimensions in rubric order."""
    by_name: Dict[str, Dict[str, Any]] = {}
    for item in raw if isinstance(raw, list) else []:
        if isinstance(item, dict) and item.get("name") and item["name"] not in by_name:
            by_name[item["name"]] = item

    dimensions = []
    for name, display_name, weight in DIMENSIONS:
        item = by_name.get(name)
        if item is None:
            notes.append(f"Dimension '{name}' missing from evaluation; scored {NEUTRAL_SCORE}")
            dimensions.append({
                "name": name,
                "display_name": display_name,
                "weight": weight,
                "score": NEUTRAL_SCORE,
                "justification": "Dimension not evaluated",
                "evidence": [],
            })
            continue

        score = _as_float(item.get("score"))
        if score is None:
            notes.append(f"Dimension '{name}' has no numeric score; scored {NEUTRAL_SCORE}")
            score = NEUTRAL_SCORE
        elif not 1.0 <= score <= 5.0:
            clamped = min(5.0, max(1.0, score))
            notes.append(f"Dimension '{name}' score {score} clamped to {clamped}")
            score = clamped

        item_weight = _as_float(item.get("weight"))
        sub_scores = item.get("sub_scores")
        if isinstance(sub_scores, dict):
            sub_scores = {key: _as_float(value) for key, value in sub_scores.items()}
            sub_scores = {key: value for key, value in sub_scores.items() if value is not None} or None
        else:
            sub_scores = None
        dimensions.append({
            **item,
            "sub_scores": sub_scores,
            "display_name": item.get("display_name") or display_name,
            "weight": item_weight if item_weight is not None and 0.0 <= item_weight <= 1.0 else weight,
            "score": score,
            "justification": str(item.get("justification") or ""),
        })
    return dimensions


def weighted_score(dimensions: List[Dict[str, Any]]) -> float:
    return round(sum(dim["score"] * dim["weight"] for dim in dimensions), 2)


def normalize_recommendations(raw: Any) -> List[Dict[str, Any]]:
    """Drop unusable entries and order the rest critical -> low, keeping input order within a priority."""
    recommendations = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, dict):
            continue
        issue = item.get("issue") or item.get("suggestion")
        if not issue:
            continue
        try:
            recommendations.append(Recommendation(**{**item, "issue": str(issue)}))
        except ValidationError:
            continue
    recommendations.sort(key=lambda rec: PRIORITY_ORDER.index(rec.priority))
    return [rec.model_dump() for rec in recommendations]


def build_evaluation(
    data: Dict[str, Any],
    brand_id: str,
    evaluator: Optional[str] = None,
) -> Tuple[EvaluationResult, List[str]]:
    """Complete a raw evaluation payload and validate it.

    Returns the evaluation and notes about what had to be filled in.

    Raises:
        EvaluationError: if the completed payload still does not validate
    """
    notes: List[str] = []
    dimensions = normalize_dimensions(data.get("dimensions"), notes)

    overall = _as_float(data.get("overall_score"))
    if overall is None:
        overall = weighted_score(dimensions)
        notes.append(f"Overall score missing; calculated {overall:.2f} from dimension weights")

    try:
        evaluation = EvaluationResult(
            brand_id=brand_id,
            overall_score=overall,
            dimensions=dimensions,
            recommendations=normalize_recommendations(data.get("recommendations")),
            evaluator=evaluator,
        )
    except ValidationError as e:
        raise EvaluationError(f"Evaluation payload is invalid: {e.error_count()} error(s)") from e
    return evaluation, notes


def build_evaluation_prompt(specification: Dict[str, Any], schema_warnings: Optional[List[str]] = None) -> str:
    warnings_text = ""
    if schema_warnings:
        lines = "\n".join(f"- {warning}" for warning in schema_warnings)
        warnings_text = f"\nSYNTHESIS WARNINGS (consider these for Parseability):\n{lines}\n"
    return EVALUATION_PROMPT.format(
        specification=json.dumps(specification, indent=2),
        schema_warnings_text=warnings_text,
    )


class LangChainEvaluator:
    """Scores a specification against the six-dimension rubric with one model call."""

    def __init__(self, client: Optional[ChatModelClient] = None, settings: Optional[Settings] = None):
        if client is None:
            settings = settings or Settings()
            client = ChatModelClient(settings, settings.evaluation_model, settings.evaluation_max_tokens)
        self.client = client

    async def evaluate(
        self,
        specification: Dict[str, Any],
        schema_warnings: Optional[List[str]] = None,
    ) -> ModelOutput:
        prompt = build_evaluation_prompt(specification, schema_warnings)
        logger.info("Sending evaluation request")
        try:
            text, usage = await self.client.complete(prompt)
        except ExtractionError:
            raise
        except Exception as e:
            raise EvaluationError(f"Evaluation model call failed: {e}") from e

        try:
            return ModelOutput(extract_json_payload(text), usage)
        except PayloadError as e:
            raise EvaluationError(str(e), usage=usage) from e
