"""Data models for the brand specification schema, evaluations and execution traces."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


SCHEMA_VERSION = "1.0.0"
RUBRIC_VERSION = "1.2.0"
TRACE_VERSION = "1.0.0"

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"
REQUIRED_TYPE_LEVELS = ("h1", "h2", "h3", "body", "small")

# Score at or above which a specification ships without refinement
QUALITY_GATE = 4.5

# (threshold, band) checked in order
QUALITY_BANDS = (
    (4.5, "excellent"),
    (3.5, "good"),
    (2.5, "acceptable"),
)

# (name, display name, weight); weights sum to 1.0
DIMENSIONS = (
    ("brand_fidelity", "Brand Fidelity", 0.40),
    ("completeness", "Completeness", 0.20),
    ("parseability", "Parseability", 0.15),
    ("actionability", "Actionability", 0.15),
    ("accessibility", "Accessibility", 0.05),
    ("insight_depth", "Insight Depth", 0.05),
)

PRIORITY_ORDER = ("critical", "high", "medium", "low")

QualityBand = Literal["excellent", "good", "acceptable", "poor"]
Priority = Literal["critical", "high", "medium", "low"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def quality_band_for(score: float) -> QualityBand:
    """Map an overall score to its quality band."""
    for threshold, band in QUALITY_BANDS:
        if score >= threshold:
            return band
    return "poor"


# ============================================================================
# DESIGN TOKEN MODELS
# ============================================================================

class ColorToken(BaseModel):
    """A color value with its semantic usage note."""
    value: str = Field(pattern=HEX_COLOR_PATTERN, description="Hex color value")
    usage: str = Field(min_length=1, description="How this color is used")


class NeutralColors(BaseModel):
    """Neutral palette."""
    white: ColorToken
    black: ColorToken
    gray: Dict[str, ColorToken] = Field(default_factory=dict, description="Gray scale keyed by step")


class ColorTokens(BaseModel):
    """Brand color palette."""
    primary: ColorToken
    secondary: ColorToken
    accent: Optional[ColorToken] = None
    neutrals: NeutralColors
    semantic: Optional[Dict[str, ColorToken]] = Field(default=None, description="success, warning, error")


class FontFamily(BaseModel):
    """Font family and the role it plays."""
    name: str = Field(min_length=1)
    fallback: str = "sans-serif"
    usage: str = ""
    source: Optional[str] = None


class TypeStyle(BaseModel):
    """One level of the type scale."""
    font_size: str = Field(min_length=1)
    line_height: str = "1.5"
    font_weight: int = Field(default=400, ge=100, le=1000)
    usage: str = ""


class TypographyTokens(BaseModel):
    """Typography specifications."""
    font_families: Dict[str, FontFamily]
    scale: Dict[str, TypeStyle]
    weights: List[int] = Field(default_factory=list)
    line_height_ratio: float = Field(default=1.5, gt=0)

    @field_validator("font_families")
    @classmethod
    def _require_primary_font(cls, value: Dict[str, FontFamily]) -> Dict[str, FontFamily]:
        if "primary" not in value:
            raise ValueError("a 'primary' font family is required")
        return value

    @field_validator("scale")
    @classmethod
    def _require_levels(cls, value: Dict[str, TypeStyle]) -> Dict[str, TypeStyle]:
        missing = [level for level in REQUIRED_TYPE_LEVELS if level not in value]
        if missing:
            raise ValueError(f"missing type scale levels: {', '.join(missing)}")
        return value


class SpacingTokens(BaseModel):
    """Spacing system."""
    base_unit: int = Field(gt=0)
    scale: List[int] = Field(default_factory=list)
    density: Literal["compact", "comfortable", "spacious"]
    usage_rules: Optional[Dict[str, str]] = None


class ShadowToken(BaseModel):
    name: str
    value: str
    usage: str = ""


class EffectTokens(BaseModel):
    """Shadows and corner radii."""
    shadows: List[ShadowToken] = Field(default_factory=list)
    border_radius: Dict[str, str] = Field(default_factory=dict)


class DesignTokens(BaseModel):
    colors: ColorTokens
    typography: TypographyTokens
    spacing: SpacingTokens
    effects: EffectTokens = Field(default_factory=EffectTokens)


# ============================================================================
# BRAND SPECIFICATION MODELS
# ============================================================================

ComponentCategory = Literal[
    "button", "input", "card", "navigation", "modal", "badge",
    "avatar", "icon", "table", "form", "other"
]


class BrandEssence(BaseModel):
    """Brand description, personality adjectives and tone."""
    description: str = Field(min_length=1)
    adjectives: List[str] = Field(default_factory=list)
    tone: str = Field(min_length=1)
    target_audience: Optional[str] = None


class ComponentSpec(BaseModel):
    """An observed UI component."""
    name: str = Field(min_length=1)
    category: ComponentCategory
    description: str
    visual_properties: Dict[str, Any]
    states: Dict[str, Any] = Field(default_factory=dict)
    usage_rules: str = ""
    example_html: Optional[str] = None


class LayoutPattern(BaseModel):
    """An observed page layout pattern."""
    name: str = Field(min_length=1)
    description: str = ""
    structure: str = ""
    usage: str = ""
    components_used: List[str] = Field(default_factory=list)
    layout_properties: Dict[str, Any] = Field(default_factory=dict)


class ContrastIssue(BaseModel):
    foreground: str
    background: str
    severity: str = "AA-fail"


class AccessibilityNotes(BaseModel):
    contrast_issues: List[ContrastIssue] = Field(default_factory=list)
    focus_indicators: Optional[bool] = None
    min_touch_target: Optional[str] = None


class SpecNotes(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    edge_cases: List[str] = Field(default_factory=list)


class SpecMetadata(BaseModel):
    """Provenance of a brand specification."""
    brand_id: str = Field(min_length=1)
    brand_name: str = Field(min_length=1)
    source_url: str
    extracted_at: str
    extraction_duration_ms: int = Field(default=0, ge=0)
    adjectives: List[str] = Field(default_factory=list)
    pipeline_version: str


class BrandSpecification(BaseModel):
    """Canonical brand specification (schema version SCHEMA_VERSION)."""
    version: str = Field(pattern=r"^\d+\.\d+\.\d+$")
    metadata: SpecMetadata
    brand_essence: BrandEssence
    design_tokens: DesignTokens
    components: List[ComponentSpec]
    patterns: List[LayoutPattern]
    accessibility: AccessibilityNotes = Field(default_factory=AccessibilityNotes)
    notes: SpecNotes = Field(default_factory=SpecNotes)


# ============================================================================
# EVALUATION MODELS
# ============================================================================

class Evidence(BaseModel):
    type: str = "observation"
    description: str
    reference: Optional[str] = None


class DimensionScore(BaseModel):
    """Score for one rubric dimension."""
    name: str
    display_name: str
    weight: float = Field(ge=0.0, le=1.0)
    score: float = Field(ge=1.0, le=5.0)
    justification: str = ""
    evidence: List[Evidence] = Field(default_factory=list)
    sub_scores: Optional[Dict[str, float]] = None

    @field_validator("evidence", mode="before")
    @classmethod
    def _wrap_plain_evidence(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"description": item} if isinstance(item, str) else item for item in value]
        return value


class Recommendation(BaseModel):
    """One prioritized improvement suggestion."""
    priority: Priority
    dimension: str = ""
    issue: str
    suggestion: str = ""
    expected_impact: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> str:
        priority = str(value or "").strip().lower()
        return priority if priority in PRIORITY_ORDER else "medium"


class EvaluationResult(BaseModel):
    """Quality assessment of a brand specification."""
    version: str = "1.0.0"
    rubric_version: str = RUBRIC_VERSION
    brand_id: str
    evaluated_at: datetime = Field(default_factory=utcnow)
    overall_score: float
    dimensions: List[DimensionScore]
    recommendations: List[Recommendation] = Field(default_factory=list)
    evaluator: Optional[str] = None

    @field_validator("dimensions")
    @classmethod
    def _exactly_six_dimensions(cls, value: List[DimensionScore]) -> List[DimensionScore]:
        expected = {name for name, _, _ in DIMENSIONS}
        names = [dim.name for dim in value]
        if len(names) != len(expected) or set(names) != expected:
            raise ValueError(f"expected dimensions {sorted(expected)}, got {names}")
        return value

    @computed_field
    @property
    def quality_band(self) -> QualityBand:
        return quality_band_for(self.overall_score)


# ============================================================================
# STAGE RESULT AND EXECUTION TRACE MODELS
# ============================================================================

class StageStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"


class Artifact(BaseModel):
    """A named output produced by a stage."""
    name: str
    type: str
    size_bytes: int = 0
    path: Optional[str] = None


class StageError(BaseModel):
    code: str
    message: str
    recoverable: bool = False


class LogEntry(BaseModel):
    timestamp: datetime
    level: str
    message: str


class ModelMetrics(BaseModel):
    """Token accounting for a stage that called a language model."""
    tokens_input: int = 0
    tokens_output: int = 0
    api_calls: int = 0
    model_used: Optional[str] = None
    improvements_made: Optional[int] = None


class StageResult(BaseModel):
    """Outcome of one pipeline stage."""
    name: str
    display_name: str
    status: StageStatus
    started_at: datetime
    ended_at: datetime
    duration_ms: int = 0
    artifacts: List[Artifact] = Field(default_factory=list)
    logs: List[LogEntry] = Field(default_factory=list)
    errors: List[StageError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    metrics: Optional[ModelMetrics] = None


class TraceSummary(BaseModel):
    total_duration_ms: int = 0
    status: Literal["success", "failed"]
    total_tokens: int = 0
    tokens_input: int = 0
    tokens_output: int = 0
    estimated_cost_usd: float = 0.0
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class ExecutionTrace(BaseModel):
    """Ordered stage results of one run plus the run summary."""
    version: str = TRACE_VERSION
    pipeline_version: str
    brand_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    stages: List[StageResult] = Field(default_factory=list)
    summary: Optional[TraceSummary] = None


# ============================================================================
# SESSION AND PROGRESS MODELS
# ============================================================================

TERMINAL_STAGES = ("complete", "error")


class SessionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressEvent(BaseModel):
    """One immutable progress observation."""
    model_config = ConfigDict(frozen=True)

    stage: str
    message: str
    progress_percent: int = Field(ge=0, le=100)
    timestamp: datetime = Field(default_factory=utcnow)
    brand_id: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES


class ExtractionResult(BaseModel):
    """Final output of a successful pipeline run."""
    brand_id: str
    brand_name: str
    source_url: str
    specification: Dict[str, Any]
    evaluation: EvaluationResult
    trace: ExecutionTrace
    refinement: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SessionResult(BaseModel):
    """What a terminal session holds: a result or an error."""
    status: SessionStatus
    result: Optional[ExtractionResult] = None
    error: Optional[str] = None
    trace: Optional[ExecutionTrace] = None


class ExtractionSession(BaseModel):
    """Lifetime state of one extraction request."""
    id: str
    url: str = ""
    status: SessionStatus = SessionStatus.PROCESSING
    stage: str = "setup"
    events: List[ProgressEvent] = Field(default_factory=list)
    result: Optional[SessionResult] = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    @property
    def terminal(self) -> bool:
        return bool(self.events) and self.events[-1].terminal


class EventBatch(BaseModel):
    """Events read from a session starting at a cursor."""
    session_id: str
    status: SessionStatus
    events: List[ProgressEvent]
    cursor: int
    terminal: bool


# ============================================================================
# API REQUEST/RESPONSE MODELS
# ============================================================================

class ExtractRequest(BaseModel):
    """Request model for brand extraction."""
    url: str = Field(description="Website URL to extract brand from")
    adjectives: List[str] = Field(default_factory=list, description="Optional brand adjectives")

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return value

    @field_validator("adjectives")
    @classmethod
    def _clean_adjectives(cls, value: List[str]) -> List[str]:
        return [adj.strip() for adj in value if adj and adj.strip()]


class ExtractResponse(BaseModel):
    """Response model for a started extraction."""
    session_id: str
    status: SessionStatus
    message: str


class ResultResponse(BaseModel):
    """Final result of a session."""
    session_id: str
    status: SessionStatus
    specification: Optional[Dict[str, Any]] = None
    evaluation: Optional[EvaluationResult] = None
    trace: Optional[ExecutionTrace] = None
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
