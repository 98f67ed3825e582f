"""Declarative auto-repair of schema violations.

Repairs are registered against dotted path patterns where ``*`` matches exactly
one segment (a dict key or a list index). For a violation the most specific
matching pattern wins, so adding a repair for a new error path never requires
touching the synthesizer.

A repair function receives the document and the violation location, mutates
the document in place and returns a short note describing what it changed, or
None when it could not help.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from canonizer.agents.colors import normalize_color
from canonizer.agents.defaults import (
    DEFAULT_COLORS,
    DEFAULT_DESCRIPTION,
    DEFAULT_LINE_HEIGHT_RATIO,
    DEFAULT_NEUTRALS,
    DEFAULT_SPACING,
    DEFAULT_TONE,
    DEFAULT_TYPE_SCALE,
    NOT_OBSERVED,
    default_color,
    default_colors,
    default_design_tokens,
    default_essence,
    default_font,
    default_neutrals,
    default_spacing,
    default_type_style,
    default_typography,
)
from canonizer.agents.validation import PathPart, SchemaViolation, format_path
from canonizer.app.models import REQUIRED_TYPE_LEVELS, SCHEMA_VERSION

Loc = Tuple[PathPart, ...]
RepairFn = Callable[[Dict[str, Any], Loc], Optional[str]]

REPAIRS: Dict[str, RepairFn] = {}

_MISSING = object()
_DROP = object()

COMPONENT_CATEGORIES = (
    "button", "input", "card", "navigation", "modal", "badge",
    "avatar", "icon", "table", "form", "other",
)
CATEGORY_ALIASES = {
    "nav": "navigation", "navbar": "navigation", "menu": "navigation", "header": "navigation",
    "footer": "navigation", "link": "navigation", "cta": "button", "btn": "button",
    "field": "input", "textfield": "input", "search": "input", "dialog": "modal",
    "tag": "badge", "chip": "badge", "label": "badge", "image": "icon", "logo": "icon",
    "grid": "table", "list": "table", "tile": "card", "panel": "card",
}
DENSITIES = ("compact", "comfortable", "spacious")
FONT_WEIGHT_NAMES = {
    "thin": 100, "extralight": 200, "light": 300, "normal": 400, "regular": 400,
    "medium": 500, "semibold": 600, "bold": 700, "extrabold": 800, "black": 900,
}


@dataclass
class RepairReport:
    """Notes for the repairs that were applied and violations nobody handled."""
    applied: List[str] = field(default_factory=list)
    unmatched: List[SchemaViolation] = field(default_factory=list)


def repair(*patterns: str):
    """Register a repair function for one or more path patterns."""
    def register(fn: RepairFn) -> RepairFn:
        for pattern in patterns:
            REPAIRS[pattern] = fn
        return fn
    return register


def match_path(pattern: str, loc: Loc) -> bool:
    segments = pattern.split(".")
    if len(segments) != len(loc):
        return False
    return all(seg == "*" or seg == str(part) for seg, part in zip(segments, loc))


def find_repair(loc: Loc) -> Optional[RepairFn]:
    """Return the repair for the most specific pattern matching ``loc``."""
    candidates = [pattern for pattern in REPAIRS if match_path(pattern, loc)]
    if not candidates:
        return None
    best = min(candidates, key=lambda pattern: pattern.split(".").count("*"))
    return REPAIRS[best]


def apply_repairs(document: Dict[str, Any], violations: List[SchemaViolation]) -> RepairReport:
    """Apply registered repairs for ``violations`` to ``document`` in place."""
    report = RepairReport()
    for violation in violations:
        if _under_dropped(document, violation.loc):
            continue
        repair_fn = find_repair(violation.loc)
        note = repair_fn(document, violation.loc) if repair_fn else None
        if note is None:
            report.unmatched.append(violation)
        elif note not in report.applied:
            report.applied.append(note)
    _compact(document)
    return report


# ============================================================================
# PATH HELPERS
# ============================================================================

def _step(container: Any, part: PathPart) -> Any:
    if isinstance(container, dict):
        return container.get(part, _MISSING)
    if isinstance(container, list) and isinstance(part, int) and 0 <= part < len(container):
        return container[part]
    return _MISSING


def _get(document: Dict[str, Any], loc: Loc) -> Any:
    current: Any = document
    for part in loc:
        current = _step(current, part)
        if current is _MISSING:
            return _MISSING
    return current


def _set(document: Dict[str, Any], loc: Loc, value: Any) -> bool:
    """Set ``value`` at ``loc``, creating missing intermediate dicts."""
    current: Any = document
    for part in loc[:-1]:
        nxt = _step(current, part)
        if nxt is _MISSING or nxt is None:
            if not isinstance(current, dict):
                return False
            nxt = current[part] = {}
        current = nxt
    last = loc[-1]
    if isinstance(current, dict):
        current[last] = value
        return True
    if isinstance(current, list) and isinstance(last, int) and 0 <= last < len(current):
        current[last] = value
        return True
    return False


def _drop(document: Dict[str, Any], loc: Loc) -> bool:
    """Remove the value at ``loc``; list items are compacted after the pass."""
    parent = _get(document, loc[:-1])
    last = loc[-1]
    if isinstance(parent, dict) and last in parent:
        del parent[last]
        return True
    if isinstance(parent, list) and isinstance(last, int) and 0 <= last < len(parent):
        parent[last] = _DROP
        return True
    return False


def _under_dropped(document: Dict[str, Any], loc: Loc) -> bool:
    current: Any = document
    for part in loc:
        current = _step(current, part)
        if current is _DROP:
            return True
        if current is _MISSING:
            return False
    return False


def _compact(value: Any) -> None:
    if isinstance(value, dict):
        for item in value.values():
            _compact(item)
    elif isinstance(value, list):
        value[:] = [item for item in value if item is not _DROP]
        for item in value:
            _compact(item)


def _coerce_str(value: Any) -> str:
    if value is _MISSING or value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value)


def _coerce_str_list(value: Any) -> List[str]:
    if value is _MISSING or value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [_coerce_str(item) for item in value if item is not None and _coerce_str(item)]
    return [str(value)]


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        if match:
            return int(float(match.group(0)))
    return None


# ============================================================================
# DOCUMENT ROOT
# ============================================================================

@repair("version")
def _reset_version(document, loc):
    _set(document, loc, SCHEMA_VERSION)
    return f"version: reset to {SCHEMA_VERSION}"


@repair("metadata.extraction_duration_ms")
def _reset_duration(document, loc):
    _set(document, loc, 0)
    return "metadata.extraction_duration_ms: reset to 0"


@repair("metadata.adjectives", "metadata.adjectives.*", "brand_essence.adjectives", "brand_essence.adjectives.*")
def _fix_adjective_list(document, loc):
    list_loc = loc if loc[-1] == "adjectives" else loc[:-1]
    _set(document, list_loc, _coerce_str_list(_get(document, list_loc)))
    return f"{format_path(list_loc)}: coerced to a list of strings"


# ============================================================================
# BRAND ESSENCE
# ============================================================================

@repair("brand_essence")
def _default_essence(document, loc):
    _set(document, loc, default_essence())
    return "brand_essence: replaced with default"


@repair("brand_essence.description")
def _fix_description(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or DEFAULT_DESCRIPTION)
    return "brand_essence.description: " + ("coerced to text" if text else "filled with default")


@repair("brand_essence.tone")
def _fix_tone(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or DEFAULT_TONE)
    return "brand_essence.tone: " + ("coerced to text" if text else f"defaulted to '{DEFAULT_TONE}'")


@repair("brand_essence.target_audience")
def _fix_audience(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or None)
    return "brand_essence.target_audience: coerced to text"


# ============================================================================
# COLORS
# ============================================================================

def _required_color_default(role: str) -> Dict[str, str]:
    if role in DEFAULT_COLORS:
        return default_color(role)
    return dict(DEFAULT_NEUTRALS[role])


@repair("design_tokens")
def _default_tokens(document, loc):
    _set(document, loc, default_design_tokens())
    return "design_tokens: replaced with defaults"


@repair("design_tokens.colors")
def _default_color_tokens(document, loc):
    _set(document, loc, default_colors())
    return "design_tokens.colors: replaced with defaults"


@repair("design_tokens.colors.neutrals")
def _default_neutral_tokens(document, loc):
    _set(document, loc, default_neutrals())
    return "design_tokens.colors.neutrals: replaced with defaults"


@repair(
    "design_tokens.colors.primary",
    "design_tokens.colors.secondary",
    "design_tokens.colors.neutrals.white",
    "design_tokens.colors.neutrals.black",
)
def _fix_required_color(document, loc):
    role = str(loc[-1])
    color = normalize_color(_get(document, loc))
    if color:
        _set(document, loc, {"value": color, "usage": f"{role.title()} color"})
        return f"{format_path(loc)}: wrapped bare color {color}"
    default = _required_color_default(role)
    _set(document, loc, default)
    return f"{format_path(loc)}: defaulted to {default['value']} {NOT_OBSERVED}"


@repair(
    "design_tokens.colors.primary.value",
    "design_tokens.colors.secondary.value",
    "design_tokens.colors.neutrals.white.value",
    "design_tokens.colors.neutrals.black.value",
)
def _fix_required_color_value(document, loc):
    current = _get(document, loc)
    color = normalize_color(current)
    if color:
        _set(document, loc, color)
        return f"{format_path(loc)}: normalized {current!r} to {color}"
    default = _required_color_default(str(loc[-2]))
    _set(document, loc[:-1], default)
    return f"{format_path(loc)}: unreadable color replaced with {default['value']} {NOT_OBSERVED}"


@repair(
    "design_tokens.colors.accent",
    "design_tokens.colors.neutrals.gray.*",
    "design_tokens.colors.semantic.*",
)
def _fix_optional_color(document, loc):
    color = normalize_color(_get(document, loc))
    if color:
        _set(document, loc, {"value": color, "usage": f"{str(loc[-1]).title()} color"})
        return f"{format_path(loc)}: wrapped bare color {color}"
    _drop(document, loc)
    return f"{format_path(loc)}: dropped unreadable color"


@repair(
    "design_tokens.colors.accent.value",
    "design_tokens.colors.neutrals.gray.*.value",
    "design_tokens.colors.semantic.*.value",
)
def _fix_optional_color_value(document, loc):
    current = _get(document, loc)
    color = normalize_color(current)
    if color:
        _set(document, loc, color)
        return f"{format_path(loc)}: normalized {current!r} to {color}"
    _drop(document, loc[:-1])
    return f"{format_path(loc[:-1])}: dropped unreadable color {current!r}"


@repair(
    "design_tokens.colors.*.usage",
    "design_tokens.colors.neutrals.*.usage",
    "design_tokens.colors.neutrals.gray.*.usage",
    "design_tokens.colors.semantic.*.usage",
)
def _fix_color_usage(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or f"{str(loc[-2]).title()} color")
    return f"{format_path(loc)}: filled usage note"


@repair("design_tokens.colors.neutrals.gray")
def _fix_gray_scale(document, loc):
    _set(document, loc, {})
    return f"{format_path(loc)}: reset to an empty scale"


@repair("design_tokens.colors.semantic")
def _fix_semantic_colors(document, loc):
    _set(document, loc, None)
    return f"{format_path(loc)}: removed malformed semantic colors"


# ============================================================================
# TYPOGRAPHY
# ============================================================================

@repair("design_tokens.typography")
def _default_typography(document, loc):
    _set(document, loc, default_typography())
    return "design_tokens.typography: replaced with defaults"


@repair("design_tokens.typography.font_families")
def _fix_font_families(document, loc):
    families = _get(document, loc)
    if not isinstance(families, dict):
        _set(document, loc, {"primary": default_font()})
        return f"{format_path(loc)}: replaced with default primary font"
    for family in families.values():
        if isinstance(family, dict) and family.get("name"):
            families["primary"] = dict(family)
            return f"{format_path(loc)}: promoted {family['name']} to primary"
    families["primary"] = default_font()
    return f"{format_path(loc)}: added default primary font {NOT_OBSERVED}"


@repair("design_tokens.typography.font_families.*")
def _fix_font_family(document, loc):
    current = _get(document, loc)
    if isinstance(current, str) and current.strip():
        _set(document, loc, {"name": current.strip(), "fallback": "sans-serif", "usage": ""})
        return f"{format_path(loc)}: wrapped bare font name"
    if loc[-1] == "primary":
        _set(document, loc, default_font())
        return f"{format_path(loc)}: replaced with default font {NOT_OBSERVED}"
    _drop(document, loc)
    return f"{format_path(loc)}: dropped malformed font family"


@repair("design_tokens.typography.font_families.*.name")
def _fix_font_name(document, loc):
    if loc[-2] == "primary":
        _set(document, loc, default_font()["name"])
        return f"{format_path(loc)}: defaulted to {default_font()['name']}"
    _drop(document, loc[:-1])
    return f"{format_path(loc[:-1])}: dropped font family without a name"


@repair(
    "design_tokens.typography.font_families.*.*",
    "design_tokens.typography.scale.*.*",
    "design_tokens.effects.shadows.*.*",
    "components.*.example_html",
    "patterns.*.*",
    "accessibility.min_touch_target",
)
def _coerce_text_field(document, loc):
    _set(document, loc, _coerce_str(_get(document, loc)))
    return f"{format_path(loc)}: coerced to text"


@repair("design_tokens.typography.scale")
def _fix_type_scale(document, loc):
    scale = _get(document, loc)
    if not isinstance(scale, dict):
        _set(document, loc, {level: default_type_style(level) for level in DEFAULT_TYPE_SCALE})
        return f"{format_path(loc)}: replaced with default scale"
    added = [level for level in REQUIRED_TYPE_LEVELS if level not in scale]
    for level in added:
        scale[level] = default_type_style(level)
    return f"{format_path(loc)}: added default levels {', '.join(added)}"


@repair("design_tokens.typography.scale.*")
def _fix_type_style(document, loc):
    level = str(loc[-1])
    current = _get(document, loc)
    if isinstance(current, str) and current.strip():
        style = default_type_style(level)
        style["font_size"] = current.strip()
        _set(document, loc, style)
        return f"{format_path(loc)}: wrapped bare font size"
    if level in REQUIRED_TYPE_LEVELS:
        _set(document, loc, default_type_style(level))
        return f"{format_path(loc)}: replaced with default style"
    _drop(document, loc)
    return f"{format_path(loc)}: dropped malformed style"


@repair("design_tokens.typography.scale.*.font_size")
def _fix_font_size(document, loc):
    current = _get(document, loc)
    if isinstance(current, (int, float)) and not isinstance(current, bool):
        _set(document, loc, f"{current:g}px")
        return f"{format_path(loc)}: added px unit"
    _set(document, loc, default_type_style(str(loc[-2]))["font_size"])
    return f"{format_path(loc)}: defaulted font size"


@repair("design_tokens.typography.scale.*.font_weight")
def _fix_font_weight(document, loc):
    current = _get(document, loc)
    weight = None
    if isinstance(current, str):
        weight = FONT_WEIGHT_NAMES.get(current.strip().lower().replace("-", "").replace(" ", ""))
    if weight is None:
        weight = _parse_int(current)
    if weight is None:
        weight = default_type_style(str(loc[-2]))["font_weight"]
    weight = max(100, min(1000, weight))
    _set(document, loc, weight)
    return f"{format_path(loc)}: set to {weight}"


@repair("design_tokens.typography.weights", "design_tokens.typography.weights.*")
def _recompute_weights(document, loc):
    list_loc = loc if loc[-1] == "weights" else loc[:-1]
    scale = _get(document, list_loc[:-1] + ("scale",))
    weights = set()
    if isinstance(scale, dict):
        for style in scale.values():
            weight = _parse_int(style.get("font_weight")) if isinstance(style, dict) else None
            if weight:
                weights.add(weight)
    _set(document, list_loc, sorted(weights))
    return f"{format_path(list_loc)}: recomputed from type scale"


@repair("design_tokens.typography.line_height_ratio")
def _fix_line_height_ratio(document, loc):
    _set(document, loc, DEFAULT_LINE_HEIGHT_RATIO)
    return f"{format_path(loc)}: defaulted to {DEFAULT_LINE_HEIGHT_RATIO}"


# ============================================================================
# SPACING AND EFFECTS
# ============================================================================

@repair("design_tokens.spacing")
def _default_spacing(document, loc):
    _set(document, loc, default_spacing())
    return "design_tokens.spacing: replaced with defaults"


@repair("design_tokens.spacing.base_unit")
def _fix_base_unit(document, loc):
    unit = _parse_int(_get(document, loc))
    if not unit or unit <= 0:
        unit = DEFAULT_SPACING["base_unit"]
    _set(document, loc, unit)
    return f"{format_path(loc)}: set to {unit}"


@repair("design_tokens.spacing.scale", "design_tokens.spacing.scale.*")
def _fix_spacing_scale(document, loc):
    list_loc = loc if loc[-1] == "scale" else loc[:-1]
    current = _get(document, list_loc)
    values = [_parse_int(item) for item in current] if isinstance(current, list) else []
    values = [value for value in values if value is not None]
    _set(document, list_loc, values or list(DEFAULT_SPACING["scale"]))
    return f"{format_path(list_loc)}: parsed to integers"


@repair("design_tokens.spacing.density")
def _fix_density(document, loc):
    text = _coerce_str(_get(document, loc)).strip().lower()
    density = text if text in DENSITIES else DEFAULT_SPACING["density"]
    _set(document, loc, density)
    return f"{format_path(loc)}: set to {density}"


@repair("design_tokens.spacing.usage_rules", "design_tokens.spacing.usage_rules.*")
def _fix_spacing_rules(document, loc):
    rules_loc = loc if loc[-1] == "usage_rules" else loc[:-1]
    rules = _get(document, rules_loc)
    fixed = {str(k): _coerce_str(v) for k, v in rules.items()} if isinstance(rules, dict) else None
    _set(document, rules_loc, fixed)
    return f"{format_path(rules_loc)}: coerced to text rules"


@repair("design_tokens.effects")
def _default_effects(document, loc):
    _set(document, loc, {"shadows": [], "border_radius": {}})
    return "design_tokens.effects: replaced with defaults"


@repair("design_tokens.effects.shadows")
def _fix_shadows(document, loc):
    _set(document, loc, [])
    return f"{format_path(loc)}: reset to an empty list"


@repair("design_tokens.effects.shadows.*")
def _fix_shadow(document, loc):
    current = _get(document, loc)
    if isinstance(current, str) and current.strip():
        _set(document, loc, {"name": f"shadow-{loc[-1] + 1}", "value": current.strip(), "usage": ""})
        return f"{format_path(loc)}: wrapped bare shadow value"
    _drop(document, loc)
    return f"{format_path(loc)}: dropped malformed shadow"


@repair("design_tokens.effects.shadows.*.name")
def _fix_shadow_name(document, loc):
    _set(document, loc, f"shadow-{loc[-2] + 1}")
    return f"{format_path(loc)}: named by position"


@repair("design_tokens.effects.shadows.*.value")
def _fix_shadow_value(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    if text:
        _set(document, loc, text)
        return f"{format_path(loc)}: coerced to text"
    _drop(document, loc[:-1])
    return f"{format_path(loc[:-1])}: dropped shadow without a value"


@repair("design_tokens.effects.border_radius")
def _fix_radius_map(document, loc):
    current = _get(document, loc)
    if isinstance(current, list):
        names = ("sm", "md", "lg", "xl")
        _set(document, loc, {name: _radius_text(value) for name, value in zip(names, current)})
        return f"{format_path(loc)}: named list of radii"
    _set(document, loc, {})
    return f"{format_path(loc)}: reset to an empty map"


@repair("design_tokens.effects.border_radius.*")
def _fix_radius(document, loc):
    _set(document, loc, _radius_text(_get(document, loc)))
    return f"{format_path(loc)}: coerced to text"


def _radius_text(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}px"
    return _coerce_str(value)


# ============================================================================
# COMPONENTS AND PATTERNS
# ============================================================================

@repair("components", "patterns")
def _fix_item_list(document, loc):
    current = _get(document, loc)
    if isinstance(current, dict):
        items = []
        for name, value in current.items():
            if isinstance(value, dict):
                items.append({"name": str(name), **value})
        _set(document, loc, items)
        return f"{format_path(loc)}: converted mapping to a list"
    _set(document, loc, [])
    return f"{format_path(loc)}: reset to an empty list"


@repair("components.*", "patterns.*", "accessibility.contrast_issues.*", "accessibility.contrast_issues.*.*")
def _drop_list_item(document, loc):
    item_loc = loc[:3] if loc[0] == "accessibility" else loc[:2]
    _drop(document, item_loc)
    return f"{format_path(item_loc)}: dropped malformed entry"


@repair("components.*.name")
def _fix_component_name(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or f"Component {loc[1] + 1}")
    return f"{format_path(loc)}: filled name"


@repair("patterns.*.name")
def _fix_pattern_name(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    _set(document, loc, text or f"Pattern {loc[1] + 1}")
    return f"{format_path(loc)}: filled name"


def coerce_category(value: Any) -> str:
    """Map a free-form component category onto the fixed category set."""
    text = _coerce_str(value).strip().lower()
    if text in COMPONENT_CATEGORIES:
        return text
    singular = text[:-1] if text.endswith("s") else text
    if singular in COMPONENT_CATEGORIES:
        return singular
    return CATEGORY_ALIASES.get(singular, CATEGORY_ALIASES.get(text, "other"))


@repair("components.*.category")
def _fix_category(document, loc):
    category = coerce_category(_get(document, loc))
    _set(document, loc, category)
    return f"{format_path(loc)}: set to '{category}'"


@repair("components.*.description")
def _fix_component_description(document, loc):
    text = _coerce_str(_get(document, loc)).strip()
    if not text:
        text = _coerce_str(_get(document, loc[:-1] + ("name",))) or "Component"
    _set(document, loc, text)
    return f"{format_path(loc)}: filled description"


@repair(
    "components.*.visual_properties",
    "components.*.states",
    "patterns.*.layout_properties",
)
def _fix_property_map(document, loc):
    current = _get(document, loc)
    if isinstance(current, str) and current.strip():
        _set(document, loc, {"description": current.strip()})
        return f"{format_path(loc)}: wrapped text description"
    if isinstance(current, list):
        _set(document, loc, {str(item): True for item in current})
        return f"{format_path(loc)}: converted list to a map"
    _set(document, loc, {})
    return f"{format_path(loc)}: reset to an empty map"


@repair("components.*.usage_rules")
def _fix_usage_rules(document, loc):
    current = _get(document, loc)
    text = "; ".join(str(rule) for rule in current) if isinstance(current, list) else _coerce_str(current)
    _set(document, loc, text)
    return f"{format_path(loc)}: joined usage rules"


@repair("patterns.*.components_used", "patterns.*.components_used.*")
def _fix_components_used(document, loc):
    list_loc = loc[:3]
    _set(document, list_loc, _coerce_str_list(_get(document, list_loc)))
    return f"{format_path(list_loc)}: coerced to a list of strings"


# ============================================================================
# ACCESSIBILITY AND NOTES
# ============================================================================

@repair("accessibility")
def _default_accessibility(document, loc):
    _set(document, loc, {"contrast_issues": [], "focus_indicators": None, "min_touch_target": None})
    return "accessibility: replaced with defaults"


@repair("accessibility.contrast_issues")
def _fix_contrast_issues(document, loc):
    _set(document, loc, [])
    return f"{format_path(loc)}: reset to an empty list"


@repair("accessibility.focus_indicators")
def _fix_focus_indicators(document, loc):
    current = _get(document, loc)
    if isinstance(current, str):
        value = current.strip().lower() in {"yes", "true", "visible", "present"}
    else:
        value = None
    _set(document, loc, value)
    return f"{format_path(loc)}: coerced to a flag"


@repair("notes")
def _default_notes(document, loc):
    _set(document, loc, {"strengths": [], "opportunities": [], "edge_cases": []})
    return "notes: replaced with defaults"


@repair("notes.*", "notes.*.*")
def _fix_note_list(document, loc):
    list_loc = loc[:2]
    _set(document, list_loc, _coerce_str_list(_get(document, list_loc)))
    return f"{format_path(list_loc)}: coerced to a list of strings"
