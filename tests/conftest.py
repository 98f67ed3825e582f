"""Shared test fixtures for pytest.

Adapters are replaced by in-memory fakes so no test launches a browser or
calls a language model. DATA_DIR is cleared before anything imports the
settings so the app never writes artifacts during API tests.
"""
import copy
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("DATA_DIR", "")
os.environ.setdefault("LLM_PROVIDER", "auto")

from canonizer.agents.interfaces import CaptureResult, ModelOutput, Screenshot, TokenUsage
from canonizer.agents.orchestrator import ExtractionPipeline
from canonizer.app.models import DIMENSIONS


class StepClock:
    """Deterministic clock advancing a fixed step on every call."""

    def __init__(self, start: Optional[datetime] = None, step_ms: int = 100):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = timedelta(milliseconds=step_ms)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


SAMPLE_TOKENS: Dict[str, Any] = {
    "brand_essence": {
        "description": "Payments infrastructure for the internet",
        "adjectives": ["confident", "technical", "modern"],
        "tone": "professional",
        "target_audience": "Developers and finance teams",
    },
    "colors": {
        "all_colors": [
            {"hex": "#635bff", "name": "Blurple", "frequency": "high", "usage_context": "CTAs"},
            {"hex": "#0a2540", "name": "Navy", "frequency": "high", "usage_context": "Headings"},
            {"hex": "#adbdcc", "name": "Light Gray", "frequency": "medium", "usage_context": "Borders"},
            {"hex": "#425466", "name": "Dark Gray", "frequency": "medium", "usage_context": "Body text"},
            {"hex": "#09825d", "name": "Success Green", "frequency": "low", "usage_context": "Success"},
        ],
        "semantic_mapping": {
            "primary": "#635bff",
            "secondary": "#0a2540",
            "accent": "#00d4ff",
            "background": "#ffffff",
            "text_primary": "#0a2540",
            "text_secondary": "#425466",
        },
    },
    "typography": {
        "font_families": [
            {"name": "Sohne", "role": "primary", "fallback": "sans-serif", "usage": "Headings and body"},
            {"name": "Source Code Pro", "role": "monospace", "fallback": "monospace", "usage": "Code"},
        ],
        "font_scale": [
            {"level": "h1", "approximate_size": "56px", "weight": 600, "line_height": "1.1", "usage": "Hero"},
            {"level": "h2", "approximate_size": "38px", "weight": 600, "line_height": "1.2"},
            {"level": "h3", "approximate_size": "24px", "weight": 500},
            {"level": "body", "approximate_size": "17px", "weight": 400, "line_height": "1.6"},
            {"level": "small", "approximate_size": "14px", "weight": 400},
        ],
        "line_height_ratio": 1.6,
    },
    "spacing": {
        "estimated_base_unit": 8,
        "scale": [4, 8, 16, 24, 32, 64],
        "density": "spacious",
        "padding_patterns": ["16px 24px"],
        "margin_patterns": ["64px 0"],
    },
    "effects": {
        "shadows": [{"name": "card", "value": "0 2px 5px rgba(0,0,0,0.1)", "usage": "Cards"}],
        "border_radius_scale": ["4px", "8px", "16px"],
    },
    "components": [
        {
            "name": "Primary Button",
            "category": "button",
            "description": "Pill-shaped call to action",
            "visual_properties": {"background": "#635bff", "border_radius": "16px"},
            "states_observed": {"hover": "darker background"},
            "usage_notes": "One per section",
        },
        {
            "name": "Pricing Card",
            "category": "card",
            "description": "White card with shadow",
            "visual_properties": {"background": "#ffffff"},
        },
    ],
    "layout_patterns": [
        {
            "name": "Hero",
            "description": "Headline with gradient background",
            "layout_type": "centered",
            "max_width": "1080px",
            "components_used": ["Primary Button"],
        },
    ],
    "accessibility_observations": {
        "contrast_issues": ["#adbdcc / #ffffff"],
        "focus_indicators": "yes",
        "touch_targets": "yes",
    },
    "notes": {
        "strengths": ["Consistent color usage"],
        "distinctive_elements": ["Animated gradient"],
    },
}


def minimal_tokens() -> Dict[str, Any]:
    """A sparse analysis reply: primary color only, no secondary."""
    return {
        "brand_essence": {"description": "Example brand", "adjectives": ["bold"], "tone": "friendly"},
        "colors": {
            "all_colors": [{"hex": "#ff5500", "name": "Orange", "frequency": "high"}],
            "semantic_mapping": {"primary": "#ff5500"},
        },
        "typography": {"font_families": [{"name": "Inter", "role": "primary"}]},
    }


def evaluation_payload(
    overall: Optional[float] = 4.0,
    score: float = 4.0,
    recommendations: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "dimensions": [
            {
                "name": name,
                "display_name": display_name,
                "weight": weight,
                "score": score,
                "justification": f"{display_name} looks reasonable",
                "evidence": ["observed in screenshots"],
            }
            for name, display_name, weight in DIMENSIONS
        ],
        "recommendations": recommendations if recommendations is not None else [],
    }
    if overall is not None:
        data["overall_score"] = overall
    return data


HIGH_RECOMMENDATION = {
    "priority": "high",
    "dimension": "brand_fidelity",
    "issue": "Secondary color is a default",
    "suggestion": "Use the navy observed in headings",
}


class FakeCapture:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []

    async def capture(self, url: str) -> CaptureResult:
        self.calls.append(url)
        if self.error:
            raise self.error
        return CaptureResult(
            url=url,
            screenshots=[
                Screenshot("hero.png", b"\x89PNG hero"),
                Screenshot("section_1.png", b"\x89PNG section"),
                Screenshot("full_page.png", b"\x89PNG full", analyzable=False),
            ],
            dom_summary={"title": "Example"},
            style_summary={"colors": ["#ff5500"]},
        )


class FakeAnalyzer:
    def __init__(self, tokens: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.tokens = tokens if tokens is not None else copy.deepcopy(SAMPLE_TOKENS)
        self.error = error
        self.calls = 0

    async def analyze(self, capture: CaptureResult, adjectives: List[str]) -> ModelOutput:
        self.calls += 1
        if self.error:
            raise self.error
        return ModelOutput(copy.deepcopy(self.tokens), TokenUsage(1200, 800, "fake-vision"))


class FakeEvaluator:
    def __init__(self, payload: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.payload = payload if payload is not None else evaluation_payload(4.7, 4.7)
        self.error = error
        self.calls = 0
        self.warnings_seen: Optional[List[str]] = None

    async def evaluate(self, specification, schema_warnings=None) -> ModelOutput:
        self.calls += 1
        self.warnings_seen = schema_warnings
        if self.error:
            raise self.error
        return ModelOutput(copy.deepcopy(self.payload), TokenUsage(900, 400, "fake-evaluator"))


class FakeRefiner:
    """Returns the input with a fix applied, or something broken, or raises."""

    def __init__(self, mode: str = "fix", error: Optional[Exception] = None):
        self.mode = mode
        self.error = error
        self.calls = 0
        self.received: List[Dict[str, Any]] = []

    async def refine(self, specification, evaluation, recommendations) -> ModelOutput:
        self.calls += 1
        self.received.append(recommendations)
        if self.error:
            raise self.error
        refined = copy.deepcopy(specification)
        if self.mode == "fix":
            refined["design_tokens"]["colors"]["secondary"] = {
                "value": "#0a2540",
                "usage": "Headings and dark sections",
            }
        elif self.mode == "break":
            refined["design_tokens"]["colors"]["primary"] = {"value": "not-a-color", "usage": "Broken"}
        elif self.mode == "tamper":
            refined["metadata"]["brand_id"] = "tampered"
            refined["version"] = "9.9.9"
        return ModelOutput(refined, TokenUsage(1500, 2500, "fake-refiner"))


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sample_tokens() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_TOKENS)


@pytest.fixture
def spec_metadata() -> Dict[str, Any]:
    return {
        "brand_id": "example_2024_05_01_abcd1234",
        "brand_name": "example",
        "source_url": "https://www.example.com",
        "extracted_at": "2024-05-01T12:00:00+00:00",
        "extraction_duration_ms": 1500,
        "adjectives": ["bold"],
    }


def make_pipeline(
    capture=None,
    analyzer=None,
    evaluator=None,
    refiner=None,
    store=None,
    clock=None,
) -> ExtractionPipeline:
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    return ExtractionPipeline(
        capture=capture or FakeCapture(),
        analyzer=analyzer or FakeAnalyzer(),
        evaluator=evaluator or FakeEvaluator(),
        refiner=refiner or FakeRefiner(),
        store=store,
        **kwargs,
    )

