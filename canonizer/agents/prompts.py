"""Prompt templates for the analysis, evaluation and refinement model calls."""
# Literal JSON braces are doubled because the templates go through str.format

ANALYSIS_PROMPT = """You are a brand design expert analyzing website screenshots to extract a comprehensive brand identity specification.
{adjectives_text}
I'm showing you {screenshot_count} screenshots of a website. Analyze these screenshots to extract the complete brand identity.

PAGE STRUCTURE (from the rendered DOM):
{dom_summary}

COMPUTED STYLES (from the browser):
{style_summary}

YOUR TASK:
Extract the brand's visual identity into structured JSON format. Be thorough and specific.

REQUIRED OUTPUT (JSON):

{{
  "brand_essence": {{
    "description": "2-3 sentence summary of the brand identity and visual style",
    "adjectives": ["5-8 adjectives that capture the brand personality"],
    "tone": "one of: formal, professional, conversational, casual, playful, technical, friendly"
  }},

  "colors": {{
    "all_colors": [
      {{
        "hex": "#RRGGBB",
        "name": "descriptive name (e.g., 'Deep Purple', 'Navy Blue')",
        "usage_context": "where you see this color used (e.g., 'primary CTAs', 'backgrounds', 'text')",
        "frequency": "how often it appears: high, medium, low"
      }}
    ],
    "semantic_mapping": {{
      "primary": "#hex color for primary brand color",
      "secondary": "#hex color for secondary brand color",
      "accent": "#hex color for accent/highlight color (if present)",
      "background": "#hex for main background",
      "text_primary": "#hex for main text color",
      "text_secondary": "#hex for secondary text color"
    }}
  }},

  "typography": {{
    "font_families": [
      {{
        "name": "Font Family Name",
        "role": "primary, secondary, or monospace",
        "usage": "where this font is used",
        "fallback": "fallback font stack if visible"
      }}
    ],
    "font_scale": [
      {{
        "level": "h1, h2, h3, h4, body, small, caption",
        "approximate_size": "estimated font size (e.g., '48px', '32px', '16px')",
        "weight": 400,
        "usage": "where this style is used"
      }}
    ],
    "line_height_ratio": 1.5
  }},

  "spacing": {{
    "estimated_base_unit": 8,
    "density": "compact, comfortable, or spacious",
    "padding_patterns": ["observed padding patterns, e.g., '16px on buttons'"],
    "margin_patterns": ["observed margin patterns, e.g., '64px between sections'"]
  }},

  "components": [
    {{
      "name": "Component Name (e.g., 'Primary Button', 'Input Field', 'Card')",
      "category": "button, input, card, navigation, modal, badge, avatar, icon, table, form, or other",
      "description": "what this component is and does",
      "visual_properties": {{
        "background_color": "#hex",
        "text_color": "#hex",
        "border": "e.g., 'none' or '1px solid #hex'",
        "border_radius": "e.g., '6px'",
        "padding": "e.g., '12px 24px'",
        "font_size": "e.g., '16px'",
        "font_weight": 600,
        "shadow": "box-shadow value if present"
      }},
      "states_observed": {{
        "hover": "any hover state changes observed",
        "active": "any active state changes observed"
      }},
      "usage_notes": "when and how this component is used"
    }}
  ],

  "effects": {{
    "shadows": [
      {{
        "name": "sm, md, lg, or descriptive name",
        "value": "CSS box-shadow value",
        "usage": "where this shadow is used"
      }}
    ],
    "border_radius_scale": ["observed border radius values, e.g., '4px', '8px', '12px'"]
  }},

  "layout_patterns": [
    {{
      "name": "Pattern name (e.g., 'Hero Section', 'Feature Grid', 'Navigation Bar')",
      "description": "structural description",
      "layout_type": "e.g., 'centered', 'full-width', 'grid', 'flexbox'",
      "max_width": "observed max-width if applicable",
      "components_used": ["list of components used in this pattern"]
    }}
  ],

  "accessibility_observations": {{
    "contrast_issues": ["low-contrast combinations written as '#foreground/#background'"],
    "focus_indicators": "yes, no or unclear",
    "touch_targets": "yes, no or unclear"
  }},

  "notes": {{
    "strengths": ["what the brand does well visually"],
    "distinctive_elements": ["unique or distinctive visual elements"],
    "edge_cases": ["any edge cases or exceptions noticed"]
  }}
}}

IMPORTANT INSTRUCTIONS:
1. Be specific and thorough - extract at least 8-12 components
2. Include ALL colors you see, then map the most important ones to semantic roles
3. Provide actual hex values, not color names
4. Give specific measurements when possible (even if approximate)
5. Cross-reference what you see in the screenshots with the computed styles above
6. If you're unsure about exact values, make your best estimate but note it in the component's usage_notes

CRITICAL: Return ONLY valid JSON. No markdown, no explanations, no additional text. Just the JSON object."""


EVALUATION_PROMPT = """You are a brand design expert evaluating the quality of an AI-extracted brand specification.

YOUR TASK:
Evaluate the following brand specification using a 6-dimension rubric. Be thorough, fair, and actionable in your assessment.

BRAND SPECIFICATION TO EVALUATE:
{specification}
{schema_warnings_text}
EVALUATION RUBRIC (6 Dimensions):

1. Brand Fidelity (40% weight)
   - How accurately does the extraction capture the actual brand identity?
   - Are colors, typography, and visual elements faithful to the source?
   - Score 5: Perfect accuracy / 3: Generally accurate but missing key elements / 1: Severely inaccurate

2. Completeness (20% weight)
   - Are all required tokens and components present?
   - Is the coverage comprehensive (8+ components, full color palette, etc.)?
   - Score 5: Fully complete, rich detail / 3: Meets minimum requirements / 1: Severely incomplete

3. Parseability (15% weight)
   - Does the output validate against the schema? Is the structure consistent and machine-readable?
   - Values marked "(default, not observed)" were filled in and not extracted.
   - Score 5: Perfect schema compliance / 3: Valid but could be better organized / 1: Severely malformed

4. Actionability (15% weight)
   - Are usage rules clear and specific? Can a design or coding assistant apply these tokens confidently?
   - Score 5: Crystal clear guidelines / 3: Adequate but could be more specific / 1: Unusable

5. Accessibility (5% weight)
   - Are contrast issues identified? Are accessibility concerns flagged?
   - Score 5: Comprehensive analysis / 3: Basic checks / 1: No accessibility analysis

6. Insight Depth (5% weight)
   - Does the spec explain WHY design choices work? Are patterns and principles articulated?
   - Score 5: Deep insights / 3: Some insights / 1: Purely descriptive

YOUR RESPONSE (JSON):
{{
  "overall_score": 0.0,
  "dimensions": [
    {{
      "name": "brand_fidelity",
      "display_name": "Brand Fidelity",
      "score": 0.0,
      "weight": 0.4,
      "justification": "2-3 sentence explanation of the score",
      "evidence": [
        {{
          "type": "strength or weakness",
          "description": "specific example",
          "reference": "path in the specification (e.g., design_tokens.colors.primary.value)"
        }}
      ],
      "sub_scores": {{
        "color_accuracy": 0.0,
        "typography_accuracy": 0.0,
        "spacing_accuracy": 0.0,
        "component_accuracy": 0.0
      }}
    }},
    {{"name": "completeness", "display_name": "Completeness", "score": 0.0, "weight": 0.2, "justification": "...", "evidence": []}},
    {{"name": "parseability", "display_name": "Parseability", "score": 0.0, "weight": 0.15, "justification": "...", "evidence": []}},
    {{"name": "actionability", "display_name": "Actionability", "score": 0.0, "weight": 0.15, "justification": "...", "evidence": []}},
    {{"name": "accessibility", "display_name": "Accessibility", "score": 0.0, "weight": 0.05, "justification": "...", "evidence": []}},
    {{"name": "insight_depth", "display_name": "Insight Depth", "score": 0.0, "weight": 0.05, "justification": "...", "evidence": []}}
  ],
  "recommendations": [
    {{
      "priority": "critical, high, medium, or low",
      "dimension": "which dimension this affects",
      "issue": "clear description of the problem",
      "suggestion": "actionable suggestion for improvement",
      "expected_impact": "what would improve if this is fixed"
    }}
  ]
}}

IMPORTANT INSTRUCTIONS:
1. Calculate overall_score as weighted average: sum(dimension.score * dimension.weight)
2. Be specific in justifications - reference actual values from the specification
3. Provide 3-6 actionable recommendations ordered by priority
4. Be fair but honest - this is for improvement, not marketing

CRITICAL: Return ONLY valid JSON. No markdown, no explanations, no additional text. Just the JSON object."""


REFINEMENT_PROMPT = """You are refining an AI-generated brand specification based on evaluation feedback.

CURRENT BRAND SPECIFICATION:
{specification}

EVALUATION RESULTS:
Overall Score: {overall_score:.2f}/5.0 ({quality_band})

DIMENSION SCORES:
{dimension_lines}

CRITICAL IMPROVEMENTS NEEDED:
{feedback}

YOUR TASK:
Improve the brand specification by addressing ONLY the critical and high-priority feedback above.

REFINEMENT GUIDELINES:
1. Focus on Extraction Accuracy: fix any hallucinations or omissions identified
2. Maintain Fidelity: do NOT change correctly extracted values
3. Enhance Completeness: add missing details if identified in feedback
4. Improve Clarity: make usage rules more specific and actionable
5. Preserve Structure: keep exactly the same JSON structure and field names

IMPORTANT:
- Only change things that the evaluation identified as problems
- Do NOT "improve" the source brand's design choices (like changing colors)
- Do NOT add features that weren't in the original extraction
- Keep the "version" and "metadata" blocks unchanged

OUTPUT FORMAT:
Return the complete refined brand specification as valid JSON.
Do NOT include markdown code blocks or any text outside the JSON."""
