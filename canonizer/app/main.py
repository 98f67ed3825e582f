"""FastAPI application exposing brand extraction sessions."""
import asyncio
import json
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
import uvicorn

from canonizer.app.config import PIPELINE_VERSION, Settings, get_settings
from canonizer.app.logger import logger, LOG_FILE
from canonizer.app.models import (
    EventBatch,
    ExtractRequest,
    ExtractResponse,
    ResultResponse,
    SessionStatus,
)
from canonizer.app.service import ExtractionService, create_pipeline
from canonizer.app.sessions import SessionRegistry
from canonizer.app.storage import BrandStore

app = FastAPI(
    title="Brand Canonizer API",
    description="Extract a canonical brand specification from a website, with live progress",
    version=PIPELINE_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state (initialized on startup)
settings: Optional[Settings] = None
store: Optional[BrandStore] = None
service: Optional[ExtractionService] = None
sweeper: Optional[asyncio.Task] = None


@app.on_event("startup")
async def startup_event():
    """Initialize the registry, storage and pipeline on startup."""
    global settings, store, service, sweeper
    settings = get_settings()
    registry = SessionRegistry(settings.session_retention_seconds, settings.session_grace_seconds)
    store = BrandStore(settings.data_dir) if settings.data_dir else None
    service = ExtractionService(create_pipeline(settings, store), registry)
    sweeper = asyncio.create_task(service.sweep_forever(settings.session_sweep_interval_seconds))
    logger.info(f"Extraction service ready (provider: {settings.llm_provider}, data dir: {settings.data_dir or 'disabled'})")


@app.on_event("shutdown")
async def shutdown_event():
    global sweeper
    if sweeper is not None:
        sweeper.cancel()
        sweeper = None


def _service() -> ExtractionService:
    if service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return service


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Brand Canonizer API",
        "version": PIPELINE_VERSION,
        "endpoints": ["/extract", "/sessions/{id}/events", "/sessions/{id}/stream", "/sessions/{id}/result", "/brands"]
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/status")
async def status():
    """Pipeline description and session counts."""
    svc = _service()
    return {
        "pipeline": svc.pipeline.describe(),
        "llm_provider": settings.llm_provider if settings else None,
        "sessions": len(svc.registry),
        "active_sessions": svc.registry.active_count,
        "running_tasks": svc.running,
    }


@app.post("/extract", response_model=ExtractResponse, status_code=202)
async def extract_brand(request: ExtractRequest):
    """Start a brand extraction; progress is read from the returned session."""
    svc = _service()
    logger.info(f"Starting extraction for URL: {request.url}")
    session_id = svc.start(request.url, request.adjectives)
    return ExtractResponse(
        session_id=session_id,
        status=SessionStatus.PROCESSING,
        message="Extraction started"
    )


@app.get("/sessions/{session_id}/events", response_model=EventBatch)
async def session_events(session_id: str, cursor: int = Query(0, ge=0)):
    """Events appended since ``cursor``."""
    batch = _service().events(session_id, cursor)
    if batch is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return batch


@app.get("/sessions/{session_id}/stream")
async def session_stream(session_id: str, cursor: int = Query(0, ge=0)):
    """Server-Sent Events replay of the session log, polling until the terminal event."""
    svc = _service()
    if svc.events(session_id, cursor) is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")
    poll_interval = settings.stream_poll_interval_seconds if settings else 0.5

    async def event_stream():
        position = cursor
        while True:
            batch = svc.events(session_id, position)
            if batch is None:
                payload = json.dumps({"stage": "error", "message": "Session expired"})
                yield f"event: expired\ndata: {payload}\n\n"
                return
            for event in batch.events:
                yield f"data: {event.model_dump_json()}\n\n"
            position = batch.cursor
            if batch.terminal:
                return
            await asyncio.sleep(poll_interval)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/sessions/{session_id}/result", response_model=ResultResponse)
async def session_result(session_id: str):
    """Final specification, evaluation and trace, or the error, once the session is terminal."""
    svc = _service()
    session = svc.registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")

    outcome = session.result
    if outcome is None:
        pending = ResultResponse(session_id=session_id, status=session.status)
        return JSONResponse(status_code=202, content=pending.model_dump(mode="json"))

    if outcome.result is None:
        return ResultResponse(
            session_id=session_id,
            status=outcome.status,
            trace=outcome.trace,
            error=outcome.error,
        )
    result = outcome.result
    return ResultResponse(
        session_id=session_id,
        status=outcome.status,
        specification=result.specification,
        evaluation=result.evaluation,
        trace=result.trace,
        metadata=result.metadata,
    )


@app.get("/brands")
async def list_brands():
    """Metadata of stored extractions, newest first."""
    if store is None:
        return {"brands": []}
    brands = await asyncio.to_thread(store.list_brands)
    return {"brands": brands}


@app.get("/brands/{brand_id}")
async def get_brand(brand_id: str):
    """A stored extraction: metadata, specification, evaluation and trace."""
    if store is None:
        raise HTTPException(status_code=404, detail="Brand storage is disabled")
    brand = await asyncio.to_thread(store.load, brand_id)
    if brand is None:
        raise HTTPException(status_code=404, detail=f"Brand {brand_id} not found")
    return brand


def main():
    """Main entry point for running the API server."""
    config = get_settings()
    logger.info("Starting Brand Canonizer API server...")
    logger.info(f"Log file: {LOG_FILE.absolute()}")
    uvicorn.run(
        "canonizer.app.main:app",
        host=config.host,
        port=config.port,
        log_level="warning"
    )


if __name__ == "__main__":
    main()
