"""On-disk storage of finished extractions under ``<data_dir>/brands/<brand_id>/``."""
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from canonizer.agents.interfaces import Screenshot
from canonizer.app.logger import logger
from canonizer.app.models import EvaluationResult, ExecutionTrace

_BRAND_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

BRAND_TOKENS_FILE = Path("analysis") / "brand_tokens.json"
SCREENSHOTS_DIR = Path("captures") / "screenshots"
BRAND_SPEC_FILE = Path("reports") / "brand_spec.json"
EVALUATION_FILE = Path("evaluations") / "evaluation.json"
TRACE_FILE = Path("execution_trace.json")
METADATA_FILE = Path("metadata.json")


class BrandStore:
    """Persist and load brand extraction artifacts."""

    def __init__(self, data_dir: str):
        self.root = Path(data_dir) / "brands"

    def brand_dir(self, brand_id: str) -> Path:
        if not _BRAND_ID_RE.match(brand_id or ""):
            raise ValueError(f"Invalid brand id: {brand_id!r}")
        return self.root / brand_id

    def _write_json(self, path: Path, data: Any) -> int:
        path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(data, indent=2, default=str)
        path.write_text(text, encoding="utf-8")
        return path.stat().st_size

    def save(
        self,
        brand_id: str,
        specification: Dict[str, Any],
        evaluation: EvaluationResult,
        trace: ExecutionTrace,
        metadata: Dict[str, Any],
        brand_tokens: Optional[Dict[str, Any]] = None,
        screenshots: Optional[List[Screenshot]] = None,
    ) -> Dict[str, int]:
        """Write every artifact of one extraction; returns relative path -> size in bytes."""
        brand_dir = self.brand_dir(brand_id)
        written: Dict[str, int] = {}

        for shot in screenshots or []:
            path = brand_dir / SCREENSHOTS_DIR / shot.name
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(shot.data)
            written[str(SCREENSHOTS_DIR / shot.name)] = len(shot.data)

        documents = [
            (BRAND_SPEC_FILE, specification),
            (EVALUATION_FILE, evaluation.model_dump(mode="json")),
            (TRACE_FILE, trace.model_dump(mode="json")),
            (METADATA_FILE, metadata),
        ]
        if brand_tokens is not None:
            documents.insert(0, (BRAND_TOKENS_FILE, brand_tokens))
        for relative, data in documents:
            written[str(relative)] = self._write_json(brand_dir / relative, data)

        logger.info(f"Saved {len(written)} artifacts to {brand_dir}")
        return written

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.is_file():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def list_brands(self) -> List[Dict[str, Any]]:
        """Metadata of every stored brand, newest first."""
        if not self.root.is_dir():
            return []
        brands = []
        for brand_dir in self.root.iterdir():
            if not brand_dir.is_dir():
                continue
            try:
                metadata = self._read_json(brand_dir / METADATA_FILE)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable brand {brand_dir.name}: {e}")
                continue
            if metadata:
                brands.append(metadata)
        brands.sort(key=lambda item: str(item.get("extracted_at", "")), reverse=True)
        return brands

    def load(self, brand_id: str) -> Optional[Dict[str, Any]]:
        """Load a stored extraction, or None when it does not exist."""
        try:
            brand_dir = self.brand_dir(brand_id)
        except ValueError:
            return None
        metadata = self._read_json(brand_dir / METADATA_FILE)
        if metadata is None:
            return None
        return {
            "metadata": metadata,
            "specification": self._read_json(brand_dir / BRAND_SPEC_FILE),
            "evaluation": self._read_json(brand_dir / EVALUATION_FILE),
            "trace": self._read_json(brand_dir / TRACE_FILE),
        }
