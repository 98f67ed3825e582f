"""Pull JSON objects out of language-model responses."""
import json
import re
from typing import Any, Dict, Union

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class PayloadError(ValueError):
    """The response did not contain a JSON object."""


def message_text(content: Union[str, list, None]) -> str:
    """Flatten LangChain message content (a string or content blocks) to text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_json_payload(response: str) -> Dict[str, Any]:
    """Parse a JSON object from a model response.

    Tries the raw text, then a fenced ```json block, then the span from the
    first '{' to the last '}'.
    """
    response = (response or "").strip()

    candidates = [response]
    fenced = _FENCED_JSON.search(response)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = response.find("{"), response.rfind("}")
    if start != -1 and end > start:
        candidates.append(response[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    preview = response[:200].replace("\n", " ")
    raise PayloadError(f"Could not parse a JSON object from model response: {preview!r}")
