"""Tests for schema validation and the path-keyed repair registry."""
import copy

import pytest

from canonizer.agents.repairs import (
    REPAIRS,
    apply_repairs,
    coerce_category,
    find_repair,
    match_path,
)
from canonizer.agents.synthesizer import build_specification
from canonizer.agents.validation import SchemaViolation, format_path, validate_document


@pytest.fixture
def valid_spec(sample_tokens, spec_metadata):
    warnings = []
    spec = build_specification(sample_tokens, spec_metadata, warnings)
    assert validate_document(spec) == []
    return spec


def _paths(violations):
    return [v.path for v in violations]


def test_validate_document_rejects_non_objects():
    violations = validate_document(["not", "a", "spec"])

    assert len(violations) == 1
    assert violations[0].error_type == "dict_type"
    assert str(violations[0]).startswith("<root>:")


def test_violations_are_reported_as_dotted_paths(valid_spec):
    valid_spec["components"][1]["category"] = "carousel"

    violations = validate_document(valid_spec)

    assert _paths(violations) == ["components.1.category"]
    assert str(violations[0]).startswith("components.1.category: ")


def test_format_path():
    assert format_path(("design_tokens", "colors", "primary", "value")) == "design_tokens.colors.primary.value"
    assert format_path(()) == ""


@pytest.mark.parametrize(
    "pattern,loc,expected",
    [
        ("components.*.category", ("components", 3, "category"), True),
        ("components.*.category", ("components", 3), False),
        ("design_tokens.colors.primary", ("design_tokens", "colors", "primary"), True),
        ("design_tokens.colors.primary", ("design_tokens", "colors", "secondary"), False),
        ("notes.*", ("notes", "strengths"), True),
    ],
)
def test_match_path(pattern, loc, expected):
    assert match_path(pattern, loc) is expected


def test_most_specific_repair_wins():
    assert find_repair(("patterns", 0, "name")) is REPAIRS["patterns.*.name"]
    assert find_repair(("patterns", 0, "usage")) is REPAIRS["patterns.*.*"]
    assert find_repair(("no", "such", "path")) is None


@pytest.mark.parametrize(
    "raw,expected",
    [("button", "button"), ("Buttons", "button"), ("navbar", "navigation"), ("chips", "badge"), ("carousel", "other"), (None, "other")],
)
def test_coerce_category(raw, expected):
    assert coerce_category(raw) == expected


def test_repairs_normalize_color_values(valid_spec):
    valid_spec["design_tokens"]["colors"]["primary"]["value"] = "rgb(99, 91, 255)"
    valid_spec["design_tokens"]["colors"]["neutrals"]["white"]["value"] = "#FFF"

    report = apply_repairs(valid_spec, validate_document(valid_spec))

    colors = valid_spec["design_tokens"]["colors"]
    assert colors["primary"]["value"] == "#635bff"
    assert colors["neutrals"]["white"]["value"] == "#ffffff"
    assert len(report.applied) == 2
    assert validate_document(valid_spec) == []


def test_unreadable_required_color_falls_back_to_labeled_default(valid_spec):
    valid_spec["design_tokens"]["colors"]["secondary"] = {"value": "brandish", "usage": "Secondary"}

    apply_repairs(valid_spec, validate_document(valid_spec))

    secondary = valid_spec["design_tokens"]["colors"]["secondary"]
    assert secondary["value"] == "#666666"
    assert "not observed" in secondary["usage"]
    assert validate_document(valid_spec) == []


def test_unreadable_optional_colors_are_dropped(valid_spec):
    grays = valid_spec["design_tokens"]["colors"]["neutrals"]["gray"]
    grays["300"] = {"value": None, "usage": "Unknown gray"}
    valid_spec["design_tokens"]["colors"]["accent"] = "cyan-ish"

    apply_repairs(valid_spec, validate_document(valid_spec))

    assert "300" not in grays
    assert "accent" not in valid_spec["design_tokens"]["colors"]
    assert validate_document(valid_spec) == []


def test_missing_primary_font_promotes_another_family(valid_spec):
    typography = valid_spec["design_tokens"]["typography"]
    original = typography["font_families"]
    families = typography["font_families"] = {"heading": original["primary"], "monospace": original["monospace"]}

    report = apply_repairs(valid_spec, validate_document(valid_spec))

    assert families["primary"]["name"] == "Sohne"
    assert any("promoted Sohne" in note for note in report.applied)
    assert validate_document(valid_spec) == []


def test_missing_type_levels_are_filled(valid_spec):
    scale = valid_spec["design_tokens"]["typography"]["scale"]
    del scale["h3"]
    del scale["small"]

    apply_repairs(valid_spec, validate_document(valid_spec))

    assert scale["h3"]["font_size"] == "24px"
    assert scale["small"]["font_size"] == "14px"
    assert validate_document(valid_spec) == []


def test_named_font_weights_and_numeric_sizes_are_coerced(valid_spec):
    h1 = valid_spec["design_tokens"]["typography"]["scale"]["h1"]
    h1["font_weight"] = "Semi Bold"
    h1["font_size"] = 56

    apply_repairs(valid_spec, validate_document(valid_spec))

    assert h1["font_weight"] == 600
    assert h1["font_size"] == "56px"
    assert validate_document(valid_spec) == []


def test_malformed_components_are_dropped_and_categories_coerced(valid_spec):
    valid_spec["components"] = [
        "just a string",
        {"name": "Top Nav", "category": "navbar", "description": "Sticky header", "visual_properties": "dark bar"},
    ]

    report = apply_repairs(valid_spec, validate_document(valid_spec))

    assert len(valid_spec["components"]) == 1
    component = valid_spec["components"][0]
    assert component["category"] == "navigation"
    assert component["visual_properties"] == {"description": "dark bar"}
    assert "components.0: dropped malformed entry" in report.applied
    assert validate_document(valid_spec) == []


def test_spacing_values_are_parsed(valid_spec):
    spacing = valid_spec["design_tokens"]["spacing"]
    spacing["base_unit"] = "8px"
    spacing["scale"] = ["4px", "8px", "1rem"]
    spacing["density"] = "Airy"

    apply_repairs(valid_spec, validate_document(valid_spec))

    assert spacing["base_unit"] == 8
    assert spacing["scale"] == [4, 8, 1]
    assert spacing["density"] == "comfortable"
    assert validate_document(valid_spec) == []


def test_unmatched_violations_are_reported(valid_spec):
    valid_spec["metadata"]["brand_id"] = None
    original = copy.deepcopy(valid_spec)

    report = apply_repairs(valid_spec, validate_document(valid_spec))

    assert report.applied == []
    assert [v.path for v in report.unmatched] == ["metadata.brand_id"]
    assert valid_spec == original


def test_repair_notes_are_deduplicated():
    document = {"notes": {"strengths": "fast, clear", "edge_cases": "none"}}
    violations = [
        SchemaViolation(("notes", "strengths"), "list_type", "Input should be a valid list"),
        SchemaViolation(("notes", "strengths"), "list_type", "Input should be a valid list"),
    ]

    report = apply_repairs(document, violations)

    assert document["notes"]["strengths"] == ["fast", "clear"]
    assert report.applied == ["notes.strengths: coerced to a list of strings"]
