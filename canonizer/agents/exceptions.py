"""Domain exceptions for the extraction pipeline.

Adapter failures raise one of the ``ExtractionError`` subclasses; each carries a
stable ``error_code`` that ends up in the stage's error list. Model-backed
adapters attach the token usage spent before the failure so the trace can still
account for it.
"""
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from canonizer.agents.interfaces import TokenUsage
    from canonizer.app.models import ExecutionTrace


class ExtractionError(Exception):
    """Base class for extraction domain errors."""

    error_code = "EXTRACTION_ERROR"

    def __init__(self, message: str, usage: Optional["TokenUsage"] = None):
        super().__init__(message)
        self.message = message
        self.usage = usage

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class CaptureError(ExtractionError):
    error_code = "CAPTURE_ERROR"


class AnalysisError(ExtractionError):
    error_code = "ANALYSIS_ERROR"


class EvaluationError(ExtractionError):
    error_code = "EVALUATION_ERROR"


class RefinementError(ExtractionError):
    error_code = "REFINEMENT_ERROR"


class ModelUnavailableError(ExtractionError):
    error_code = "MODEL_UNAVAILABLE"

    def __init__(self, message: str = "No language model provider is configured"):
        super().__init__(message)


class PipelineError(Exception):
    """A fatal stage failure that aborted the pipeline."""

    def __init__(self, stage: str, message: str, trace: Optional["ExecutionTrace"] = None):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.trace = trace


class SessionClosedError(Exception):
    """Raised when appending to a session that already has its terminal event."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is already terminal")
        self.session_id = session_id
