"""Analysis adapter: vision model call that returns raw brand tokens."""
import base64
import json
from typing import Any, Dict, List, Optional

from canonizer.agents.exceptions import AnalysisError, ExtractionError
from canonizer.agents.interfaces import CaptureResult, ModelOutput
from canonizer.agents.llm import ChatModelClient
from canonizer.agents.parsing import PayloadError, extract_json_payload
from canonizer.agents.prompts import ANALYSIS_PROMPT
from canonizer.app.config import Settings
from canonizer.app.logger import logger

MAX_IMAGES = 5
MAX_SUMMARY_CHARS = 4000


def _summary_text(summary: Dict[str, Any]) -> str:
    if not summary:
        return "(not available)"
    text = json.dumps(summary, indent=2, default=str)
    if len(text) > MAX_SUMMARY_CHARS:
        text = text[:MAX_SUMMARY_CHARS] + "\n... (truncated)"
    return text


def build_analysis_prompt(capture: CaptureResult, adjectives: List[str], screenshot_count: int) -> str:
    adjectives_text = f"\nUser-provided brand adjectives: {', '.join(adjectives)}\n" if adjectives else ""
    return ANALYSIS_PROMPT.format(
        adjectives_text=adjectives_text,
        screenshot_count=screenshot_count,
        dom_summary=_summary_text(capture.dom_summary),
        style_summary=_summary_text(capture.style_summary),
    )


class LangChainAnalyzer:
    """Sends up to five screenshots plus the analysis prompt in one vision message."""

    def __init__(self, client: Optional[ChatModelClient] = None, settings: Optional[Settings] = None):
        if client is None:
            settings = settings or Settings()
            client = ChatModelClient(settings, settings.analyze_model, settings.analyze_max_tokens)
        self.client = client

    async def analyze(self, capture: CaptureResult, adjectives: List[str]) -> ModelOutput:
        images = [shot for shot in capture.screenshots if shot.analyzable][:MAX_IMAGES]
        if not images:
            raise AnalysisError("No screenshots available for analysis")

        prompt = build_analysis_prompt(capture, adjectives, len(images))
        content: List[dict] = []
        for shot in images:
            encoded = base64.b64encode(shot.data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{shot.media_type};base64,{encoded}"},
            })
        content.append({"type": "text", "text": prompt})

        logger.info(f"Sending {len(images)} screenshots for analysis")
        try:
            text, usage = await self.client.complete(content)
        except ExtractionError:
            raise
        except Exception as e:
            raise AnalysisError(f"Vision model call failed: {e}") from e

        try:
            tokens = extract_json_payload(text)
        except PayloadError as e:
            raise AnalysisError(str(e), usage=usage) from e

        tokens["cross_reference"] = {
            "dom_data": capture.dom_summary,
            "css_data": capture.style_summary,
        }
        return ModelOutput(tokens, usage)
