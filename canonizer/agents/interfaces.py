"""Adapter protocols for the external collaborators of the pipeline.

The orchestrator only depends on these protocols; concrete Playwright and
LangChain implementations live next to them and tests inject fakes.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from canonizer.app.models import EvaluationResult, ProgressEvent, Recommendation


@dataclass
class Screenshot:
    """A captured raster image."""
    name: str
    data: bytes
    media_type: str = "image/png"
    analyzable: bool = True


@dataclass
class CaptureResult:
    """Screenshots plus DOM and computed-style summaries of a page."""
    url: str
    screenshots: List[Screenshot] = field(default_factory=list)
    dom_summary: Dict[str, Any] = field(default_factory=dict)
    style_summary: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    model: Optional[str] = None


@dataclass
class ModelOutput:
    """Parsed payload of one language-model call and what it cost."""
    data: Dict[str, Any]
    usage: TokenUsage = field(default_factory=TokenUsage)


ProgressSink = Callable[[ProgressEvent], Any]


class CaptureAdapter(Protocol):
    async def capture(self, url: str) -> CaptureResult:
        """Capture screenshots and structural/style data for a URL."""
        ...


class AnalysisAdapter(Protocol):
    async def analyze(self, capture: CaptureResult, adjectives: List[str]) -> ModelOutput:
        """Return raw, loosely structured brand tokens."""
        ...


class EvaluationAdapter(Protocol):
    async def evaluate(
        self,
        specification: Dict[str, Any],
        schema_warnings: Optional[List[str]] = None,
    ) -> ModelOutput:
        """Return overall score, six dimensions and recommendations."""
        ...


class RefinementAdapter(Protocol):
    async def refine(
        self,
        specification: Dict[str, Any],
        evaluation: EvaluationResult,
        recommendations: List[Recommendation],
    ) -> ModelOutput:
        """Return a refined specification addressing only the given recommendations."""
        ...
