"""Extraction service: starts pipeline runs and exposes their progress and results."""
import asyncio
from typing import List, Optional, Set

from canonizer.agents.analyzer import LangChainAnalyzer
from canonizer.agents.capture import PlaywrightCapture
from canonizer.agents.evaluator import LangChainEvaluator
from canonizer.agents.exceptions import PipelineError
from canonizer.agents.orchestrator import ExtractionPipeline
from canonizer.agents.refiner import LangChainRefiner
from canonizer.app.config import Settings
from canonizer.app.logger import logger
from canonizer.app.models import EventBatch, SessionResult
from canonizer.app.sessions import SessionRegistry
from canonizer.app.storage import BrandStore


def create_pipeline(settings: Settings, store: Optional[BrandStore] = None) -> ExtractionPipeline:
    """Pipeline wired to the Playwright and LangChain adapters."""
    return ExtractionPipeline(
        capture=PlaywrightCapture(settings),
        analyzer=LangChainAnalyzer(settings=settings),
        evaluator=LangChainEvaluator(settings=settings),
        refiner=LangChainRefiner(settings=settings),
        store=store,
        pipeline_version=settings.pipeline_version,
    )


class ExtractionService:
    """Runs one background task per extraction and reports through the registry.

    Tasks are never cancelled when an observer goes away; a run always ends in
    a ``complete`` or ``error`` event.
    """

    def __init__(self, pipeline: ExtractionPipeline, registry: SessionRegistry):
        self.pipeline = pipeline
        self.registry = registry
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> int:
        return len(self._tasks)

    def start(self, url: str, adjectives: Optional[List[str]] = None) -> str:
        """Start an extraction in the background; must be called from a running event loop."""
        session_id = self.registry.create(url)
        task = asyncio.create_task(self._run(session_id, url, list(adjectives or [])))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return session_id

    async def _run(self, session_id: str, url: str, adjectives: List[str]):
        try:
            result = await self.pipeline.run(url, adjectives, progress=self.registry.sink(session_id))
        except PipelineError as e:
            logger.error(f"[{session_id}] Extraction failed at {e.stage}: {e.message}")
            self.registry.fail(session_id, e.message, e.trace)
            return
        except Exception as e:
            logger.error(f"[{session_id}] Unexpected extraction error: {str(e)}", exc_info=True)
            self.registry.fail(session_id, f"Unexpected error: {str(e)}")
            return

        self.registry.complete(session_id, result)
        logger.info(f"[{session_id}] Extraction complete: {result.brand_id}")

    def events(self, session_id: str, cursor: int = 0) -> Optional[EventBatch]:
        return self.registry.read(session_id, cursor)

    def result(self, session_id: str) -> Optional[SessionResult]:
        """None while the session runs or when it is unknown; check ``registry.get`` to tell them apart."""
        session = self.registry.get(session_id)
        return session.result if session else None

    async def join(self):
        """Wait for every running extraction to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def sweep_forever(self, interval_seconds: float):
        """Expire finished sessions every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.registry.expire()
            except Exception as e:
                logger.error(f"Session sweep failed: {str(e)}", exc_info=True)
