"""Labeled default values used when brand tokens do not provide a field.

Every default carries a usage note saying it was not observed, so a reader of
the specification can tell filled-in values from extracted ones.
"""
import copy
from typing import Any, Dict

NOT_OBSERVED = "(default, not observed)"

DEFAULT_DESCRIPTION = "Brand identity extracted from website"
DEFAULT_TONE = "professional"

DEFAULT_COLORS: Dict[str, Dict[str, str]] = {
    "primary": {"value": "#000000", "usage": f"Primary brand color {NOT_OBSERVED}"},
    "secondary": {"value": "#666666", "usage": f"Secondary brand color {NOT_OBSERVED}"},
}

DEFAULT_NEUTRALS: Dict[str, Any] = {
    "white": {"value": "#ffffff", "usage": f"White background {NOT_OBSERVED}"},
    "black": {"value": "#000000", "usage": f"Black text {NOT_OBSERVED}"},
    "gray": {},
}

DEFAULT_FONT: Dict[str, Any] = {
    "name": "Arial",
    "fallback": "sans-serif",
    "usage": f"All text {NOT_OBSERVED}",
}

DEFAULT_TYPE_SCALE: Dict[str, Dict[str, Any]] = {
    "h1": {"font_size": "48px", "line_height": "1.2", "font_weight": 700, "usage": "Page titles"},
    "h2": {"font_size": "36px", "line_height": "1.3", "font_weight": 600, "usage": "Section headings"},
    "h3": {"font_size": "24px", "line_height": "1.4", "font_weight": 600, "usage": "Subsection headings"},
    "body": {"font_size": "16px", "line_height": "1.5", "font_weight": 400, "usage": "Body text"},
    "small": {"font_size": "14px", "line_height": "1.5", "font_weight": 400, "usage": "Small text and captions"},
}

DEFAULT_SPACING: Dict[str, Any] = {
    "base_unit": 8,
    "scale": [4, 8, 12, 16, 24, 32, 48, 64, 96],
    "density": "comfortable",
}

DEFAULT_LINE_HEIGHT_RATIO = 1.5


def default_color(role: str) -> Dict[str, str]:
    return copy.deepcopy(DEFAULT_COLORS[role])


def default_neutrals() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_NEUTRALS)


def default_colors() -> Dict[str, Any]:
    return {
        "primary": default_color("primary"),
        "secondary": default_color("secondary"),
        "neutrals": default_neutrals(),
    }


def default_font() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_FONT)


def default_type_style(level: str) -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_TYPE_SCALE.get(level, DEFAULT_TYPE_SCALE["body"]))


def default_typography() -> Dict[str, Any]:
    scale = copy.deepcopy(DEFAULT_TYPE_SCALE)
    return {
        "font_families": {"primary": default_font()},
        "scale": scale,
        "weights": sorted({style["font_weight"] for style in scale.values()}),
        "line_height_ratio": DEFAULT_LINE_HEIGHT_RATIO,
    }


def default_spacing() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_SPACING)


def default_essence() -> Dict[str, Any]:
    return {"description": DEFAULT_DESCRIPTION, "adjectives": [], "tone": DEFAULT_TONE}


def default_design_tokens() -> Dict[str, Any]:
    return {
        "colors": default_colors(),
        "typography": default_typography(),
        "spacing": default_spacing(),
        "effects": {"shadows": [], "border_radius": {}},
    }
