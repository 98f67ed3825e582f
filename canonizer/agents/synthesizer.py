"""Synthesizer: turn raw analysis tokens into a canonical brand specification.

The mapping is deterministic. Anything the analysis did not provide is filled
with a labeled default and reported as a warning. The assembled document is
validated, repaired through the registry in ``repairs`` and validated once more;
violations still present after that are carried forward as warnings instead of
failing the stage.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from canonizer.agents.defaults import (
    DEFAULT_DESCRIPTION,
    DEFAULT_LINE_HEIGHT_RATIO,
    DEFAULT_TONE,
    DEFAULT_TYPE_SCALE,
    NOT_OBSERVED,
    default_color,
    default_font,
    default_neutrals,
    default_spacing,
    default_type_style,
)
from canonizer.agents.repairs import apply_repairs
from canonizer.agents.validation import SchemaViolation, validate_document
from canonizer.app.config import PIPELINE_VERSION
from canonizer.app.logger import StageLog
from canonizer.app.models import REQUIRED_TYPE_LEVELS, SCHEMA_VERSION

RADIUS_NAMES = ("sm", "md", "lg", "xl")


@dataclass
class SynthesisResult:
    """The synthesized document plus what happened while building it."""
    specification: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)
    repairs: List[str] = field(default_factory=list)
    violations: List[SchemaViolation] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations


class Synthesizer:
    """Builds, validates and repairs brand specifications."""

    def synthesize(
        self,
        raw_tokens: Dict[str, Any],
        metadata: Dict[str, Any],
        log: Optional[StageLog] = None,
    ) -> SynthesisResult:
        log = log or StageLog("synthesize")
        warnings: List[str] = []

        log.info("Converting brand tokens to brand spec format")
        if raw_tokens and not isinstance(raw_tokens, dict):
            warnings.append(f"Brand tokens are not an object ({type(raw_tokens).__name__}); using defaults")
            raw_tokens = {}
        specification = build_specification(raw_tokens or {}, metadata, warnings)
        for warning in warnings:
            log.warning(warning)

        log.info("Validating brand spec against schema")
        violations = validate_document(specification)
        if not violations:
            log.info("Brand spec passes schema validation")
            return SynthesisResult(specification, warnings)

        log.warning(f"Schema validation failed with {len(violations)} violation(s)")
        warnings.append(f"Schema validation issues: {len(violations)} errors found")
        report = apply_repairs(specification, violations)
        for note in report.applied:
            log.info(f"Repaired {note}")

        remaining = validate_document(specification)
        if remaining:
            log.error(f"Could not fix {len(remaining)} schema violation(s)")
            warnings.extend(f"Unresolved schema violation at {violation}" for violation in remaining)
        else:
            log.info("Validation issues fixed")

        return SynthesisResult(specification, warnings, report.applied, remaining)


def _section(tokens: Dict[str, Any], key: str, warnings: List[str]) -> Optional[Dict[str, Any]]:
    """The ``key`` section of the tokens, or None when it is missing or not an object."""
    value = tokens.get(key)
    if value is None or isinstance(value, dict):
        return value
    warnings.append(f"Ignoring '{key}' in brand tokens: expected an object, got {type(value).__name__}")
    return None


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def build_specification(tokens: Dict[str, Any], metadata: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    """Map raw tokens into the canonical document shape."""
    return {
        "version": SCHEMA_VERSION,
        "metadata": {
            "brand_id": metadata.get("brand_id"),
            "brand_name": metadata.get("brand_name"),
            "source_url": metadata.get("source_url"),
            "extracted_at": metadata.get("extracted_at"),
            "extraction_duration_ms": metadata.get("extraction_duration_ms", 0),
            "adjectives": list(metadata.get("adjectives") or []),
            "pipeline_version": PIPELINE_VERSION,
        },
        "brand_essence": synthesize_essence(_section(tokens, "brand_essence", warnings)),
        "design_tokens": {
            "colors": synthesize_colors(_section(tokens, "colors", warnings), warnings),
            "typography": synthesize_typography(_section(tokens, "typography", warnings), warnings),
            "spacing": synthesize_spacing(_section(tokens, "spacing", warnings)),
            "effects": synthesize_effects(_section(tokens, "effects", warnings)),
        },
        "components": synthesize_components(tokens.get("components")),
        "patterns": synthesize_patterns(tokens.get("layout_patterns")),
        "accessibility": synthesize_accessibility(_section(tokens, "accessibility_observations", warnings)),
        "notes": synthesize_notes(_section(tokens, "notes", warnings)),
    }


def synthesize_essence(essence: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    essence = essence or {}
    return {
        "description": essence.get("description") or DEFAULT_DESCRIPTION,
        "adjectives": [a for a in _as_list(essence.get("adjectives")) if isinstance(a, str)],
        "tone": essence.get("tone") or DEFAULT_TONE,
        "target_audience": essence.get("target_audience"),
    }


def _named(colors: List[Dict[str, Any]], *keywords: str) -> List[Dict[str, Any]]:
    found = []
    for color in colors:
        name = str(color.get("name") or "").lower()
        if any(keyword in name for keyword in keywords):
            found.append(color)
    return found


def synthesize_colors(colors_data: Optional[Dict[str, Any]], warnings: List[str]) -> Dict[str, Any]:
    """Map semantic color roles; missing brand colors fall back to labeled defaults."""
    colors: Dict[str, Any] = {"neutrals": default_neutrals()}
    if not colors_data:
        warnings.append("No color data available in brand tokens")
        colors_data = {}

    semantic = _mapping(colors_data.get("semantic_mapping"))
    all_colors = [c for c in _as_list(colors_data.get("all_colors")) if isinstance(c, dict)]

    if semantic.get("primary"):
        colors["primary"] = {
            "value": semantic["primary"],
            "usage": "Primary brand color used for CTAs, links, and brand accents",
        }
    else:
        candidate = next((c for c in all_colors if c.get("frequency") == "high" and c.get("hex")), None)
        if candidate:
            colors["primary"] = {
                "value": candidate["hex"],
                "usage": candidate.get("usage_context") or "Primary brand color",
            }

    if semantic.get("secondary"):
        colors["secondary"] = {
            "value": semantic["secondary"],
            "usage": "Secondary brand color for supporting elements",
        }

    for role in ("primary", "secondary"):
        if role not in colors:
            colors[role] = default_color(role)
            warnings.append(f"No {role} color observed; using default {colors[role]['value']} {NOT_OBSERVED}")

    if semantic.get("accent"):
        colors["accent"] = {"value": semantic["accent"], "usage": "Accent color for highlights and emphasis"}

    neutrals = colors["neutrals"]
    if semantic.get("background"):
        neutrals["white"] = {"value": semantic["background"], "usage": "Main background color"}
    if semantic.get("text_primary"):
        neutrals["black"] = {"value": semantic["text_primary"], "usage": "Primary text color"}

    for index, gray in enumerate(_named(all_colors, "gray", "grey")[:9]):
        step = str((index + 1) * 100)
        neutrals["gray"][step] = {"value": gray.get("hex"), "usage": gray.get("usage_context") or f"Gray {step}"}
    if not neutrals["gray"] and semantic.get("text_secondary"):
        neutrals["gray"]["500"] = {"value": semantic["text_secondary"], "usage": "Secondary text and borders"}

    semantic_colors = {}
    for role, keywords, usage in (
        ("success", ("success", "green"), "Success states and positive actions"),
        ("error", ("error", "red"), "Error states and destructive actions"),
        ("warning", ("warning", "yellow"), "Warning states and cautions"),
    ):
        matches = _named(all_colors, *keywords)
        if matches:
            semantic_colors[role] = {"value": matches[0].get("hex"), "usage": usage}
    if semantic_colors:
        colors["semantic"] = semantic_colors

    return colors


def synthesize_typography(typography_data: Optional[Dict[str, Any]], warnings: List[str]) -> Dict[str, Any]:
    typography: Dict[str, Any] = {
        "font_families": {},
        "scale": {},
        "weights": [],
        "line_height_ratio": DEFAULT_LINE_HEIGHT_RATIO,
    }
    if not typography_data:
        warnings.append("No typography data available in brand tokens")
        typography_data = {}

    for font in _as_list(typography_data.get("font_families")):
        if not isinstance(font, dict):
            continue
        role = font.get("role") or "primary"
        typography["font_families"][role] = {
            "name": font.get("name"),
            "fallback": font.get("fallback") or "sans-serif",
            "usage": font.get("usage") or f"{role} font",
            "source": font.get("source"),
        }
    if "primary" not in typography["font_families"]:
        typography["font_families"]["primary"] = default_font()
        warnings.append(f"No primary font observed; using default {default_font()['name']} {NOT_OBSERVED}")

    for style in _as_list(typography_data.get("font_scale")):
        if not isinstance(style, dict) or not style.get("level"):
            continue
        level = style["level"]
        typography["scale"][level] = {
            "font_size": style.get("approximate_size") or default_type_style(level)["font_size"],
            "line_height": style.get("line_height") or "1.2",
            "font_weight": style.get("weight") or 400,
            "usage": style.get("usage") or f"{level} text",
        }
    for level in REQUIRED_TYPE_LEVELS:
        if level not in typography["scale"]:
            typography["scale"][level] = dict(DEFAULT_TYPE_SCALE[level])

    weights = set()
    for style in typography["scale"].values():
        if isinstance(style["font_weight"], int):
            weights.add(style["font_weight"])
    typography["weights"] = sorted(weights)

    if typography_data.get("line_height_ratio"):
        typography["line_height_ratio"] = typography_data["line_height_ratio"]

    return typography


def synthesize_spacing(spacing_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    spacing = default_spacing()
    if not spacing_data:
        return spacing

    if spacing_data.get("estimated_base_unit"):
        spacing["base_unit"] = spacing_data["estimated_base_unit"]
    if spacing_data.get("scale"):
        spacing["scale"] = spacing_data["scale"]
    if spacing_data.get("density"):
        spacing["density"] = spacing_data["density"]

    padding = _as_list(spacing_data.get("padding_patterns"))
    margin = _as_list(spacing_data.get("margin_patterns"))
    if padding or margin:
        rules = {}
        if padding:
            rules["component_padding"] = padding[0]
        if margin:
            rules["section_margin"] = margin[0]
        spacing["usage_rules"] = rules

    return spacing


def synthesize_effects(effects_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    effects: Dict[str, Any] = {"shadows": [], "border_radius": {}}
    if not effects_data:
        return effects

    for shadow in _as_list(effects_data.get("shadows")):
        if isinstance(shadow, dict):
            effects["shadows"].append({
                "name": shadow.get("name"),
                "value": shadow.get("value"),
                "usage": shadow.get("usage") or "Shadow effect",
            })

    for name, value in zip(RADIUS_NAMES, _as_list(effects_data.get("border_radius_scale"))):
        effects["border_radius"][name] = value

    return effects


def _slug(name: str) -> str:
    return "-".join(name.lower().split())


def synthesize_components(components: Optional[List[Any]]) -> List[Dict[str, Any]]:
    result = []
    for comp in _as_list(components):
        if not isinstance(comp, dict):
            continue
        name = comp.get("name") or ""
        result.append({
            "name": name,
            "category": comp.get("category") or "other",
            "description": comp.get("description") or "",
            "visual_properties": comp.get("visual_properties") or {},
            "states": comp.get("states_observed") or comp.get("states") or {},
            "usage_rules": comp.get("usage_notes") or comp.get("usage_rules") or "",
            "example_html": comp.get("example_html") or (f'<div class="{_slug(name)}">{name}</div>' if name else None),
        })
    return result


def synthesize_patterns(patterns: Optional[List[Any]]) -> List[Dict[str, Any]]:
    result = []
    for pattern in _as_list(patterns):
        if not isinstance(pattern, dict):
            continue
        layout_properties = {"alignment": "center" if pattern.get("layout_type") == "centered" else "left"}
        if pattern.get("max_width"):
            layout_properties["max_width"] = pattern["max_width"]
        result.append({
            "name": pattern.get("name"),
            "description": pattern.get("description") or "",
            "structure": pattern.get("description") or "",
            "usage": pattern.get("layout_type") or "General layout",
            "components_used": pattern.get("components_used") or [],
            "layout_properties": layout_properties,
        })
    return result


def synthesize_accessibility(observations: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    accessibility: Dict[str, Any] = {"contrast_issues": []}
    if not observations:
        return accessibility

    for issue in _as_list(observations.get("contrast_issues")):
        if isinstance(issue, dict):
            accessibility["contrast_issues"].append(issue)
            continue
        foreground, _, background = str(issue).partition("/")
        accessibility["contrast_issues"].append({
            "foreground": foreground.strip() or str(issue),
            "background": background.strip() or "#ffffff",
            "severity": "AA-fail",
        })

    if observations.get("focus_indicators"):
        accessibility["focus_indicators"] = observations["focus_indicators"] == "yes"
    if observations.get("touch_targets"):
        accessibility["min_touch_target"] = "44px x 44px" if observations["touch_targets"] == "yes" else "Below 44px"

    return accessibility


def synthesize_notes(notes_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    notes_data = notes_data or {}
    return {
        "strengths": _as_list(notes_data.get("strengths")),
        "opportunities": _as_list(notes_data.get("distinctive_elements") or notes_data.get("opportunities")),
        "edge_cases": _as_list(notes_data.get("edge_cases")),
    }
