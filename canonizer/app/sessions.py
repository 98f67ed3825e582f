"""In-memory session registry for extraction progress.

Each session has exactly one writer (its pipeline task) appending to an
append-only event log, and any number of readers that pull events from their
own cursor. Sessions are reclaimed by wall-clock expiry once terminal.
"""
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from canonizer.agents.exceptions import SessionClosedError
from canonizer.app.logger import logger
from canonizer.app.models import (
    EventBatch,
    ExecutionTrace,
    ExtractionResult,
    ExtractionSession,
    ProgressEvent,
    SessionResult,
    SessionStatus,
    utcnow,
)

COMPLETE_MESSAGE = "Brand extraction complete!"


class SessionRegistry:
    """Owns every live session; the only state shared between pipeline tasks."""

    def __init__(
        self,
        retention_seconds: float = 300.0,
        grace_seconds: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.retention = timedelta(seconds=retention_seconds)
        self.grace = timedelta(seconds=grace_seconds)
        self._clock = clock
        self._sessions: Dict[str, ExtractionSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def active_count(self) -> int:
        """Sessions still waiting for their terminal event."""
        return sum(1 for session in self._sessions.values() if not session.terminal)

    def create(self, url: str = "") -> str:
        """Allocate a new ``processing`` session and return its id."""
        self.expire()
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = ExtractionSession(id=session_id, url=url, created_at=self._clock())
        logger.info(f"[{session_id}] Session created for {url or 'unknown url'}")
        return session_id

    def _expired(self, session: ExtractionSession, now: datetime) -> bool:
        return session.expires_at is not None and now >= session.expires_at

    def get(self, session_id: str) -> Optional[ExtractionSession]:
        """The session, or None when it is unknown or past its expiry."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            del self._sessions[session_id]
            logger.info(f"[{session_id}] Session expired")
            return None
        return session

    def append(self, session_id: str, event: ProgressEvent) -> bool:
        """Append ``event`` to the session log.

        Returns False for unknown sessions. Progress never moves backwards: an
        event reporting a lower percent than the previous one is recorded at the
        previous percent.

        Raises:
            SessionClosedError: when the session already ended
        """
        session = self.get(session_id)
        if session is None:
            logger.debug(f"[{session_id}] Dropping event for unknown session: {event.stage}")
            return False
        if session.terminal:
            raise SessionClosedError(session_id)

        if session.events and event.progress_percent < session.events[-1].progress_percent:
            event = event.model_copy(update={"progress_percent": session.events[-1].progress_percent})

        session.events.append(event)
        session.stage = event.stage
        if event.terminal:
            session.status = SessionStatus.COMPLETED if event.stage == "complete" else SessionStatus.FAILED
            session.expires_at = max(session.created_at + self.retention, event.timestamp + self.grace)
        return True

    def sink(self, session_id: str) -> Callable[[ProgressEvent], bool]:
        """Progress sink bound to one session."""
        def _append(event: ProgressEvent) -> bool:
            return self.append(session_id, event)
        return _append

    def read(self, session_id: str, cursor: int = 0) -> Optional[EventBatch]:
        """Events from ``cursor`` onwards, or None for unknown or expired sessions."""
        session = self.get(session_id)
        if session is None:
            return None
        cursor = max(0, min(cursor, len(session.events)))
        events = session.events[cursor:]
        return EventBatch(
            session_id=session_id,
            status=session.status,
            events=events,
            cursor=cursor + len(events),
            terminal=session.terminal,
        )

    def complete(self, session_id: str, result: ExtractionResult) -> bool:
        """Store the result and append the ``complete`` terminal event."""
        session = self.get(session_id)
        if session is None:
            logger.warning(f"[{session_id}] Result arrived for unknown session {result.brand_id}")
            return False
        session.result = SessionResult(status=SessionStatus.COMPLETED, result=result, trace=result.trace)
        event = ProgressEvent(
            stage="complete",
            message=COMPLETE_MESSAGE,
            progress_percent=100,
            timestamp=self._clock(),
            brand_id=result.brand_id,
        )
        return self.append(session_id, event)

    def fail(self, session_id: str, message: str, trace: Optional[ExecutionTrace] = None) -> bool:
        """Store the error and append the ``error`` terminal event at the last reached percent."""
        session = self.get(session_id)
        if session is None:
            logger.warning(f"[{session_id}] Failure reported for unknown session: {message}")
            return False
        session.result = SessionResult(status=SessionStatus.FAILED, error=message, trace=trace)
        percent = session.events[-1].progress_percent if session.events else 0
        event = ProgressEvent(stage="error", message=message, progress_percent=percent, timestamp=self._clock())
        return self.append(session_id, event)

    def expire(self) -> int:
        """Remove terminal sessions past their expiry; returns how many were removed."""
        now = self._clock()
        expired = [sid for sid, session in self._sessions.items() if self._expired(session, now)]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Expired {len(expired)} session(s); {len(self._sessions)} remaining")
        return len(expired)
