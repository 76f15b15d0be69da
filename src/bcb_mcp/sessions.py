"""Streaming session table for the HTTP+SSE transport."""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .errors import DuplicateSession, SessionNotFound

logger = logging.getLogger(__name__)

# Queued by close() so a reader blocked on the channel stops at once
END_OF_STREAM = None

MessageHandler = Callable[["Session", Dict[str, Any]], Awaitable[None]]


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Session:
    """One open SSE stream. The channel is read by the transport, not owned by us."""

    session_id: str
    channel: "asyncio.Queue[Dict[str, Any]]"
    created_at: float = field(default_factory=time.time)
    closed: bool = False
    tasks: Set["asyncio.Task[None]"] = field(default_factory=set)

    def send(self, message: Dict[str, Any]) -> bool:
        """
        Queue a message for the client without blocking.

        Returns False once the session is closed (the message is discarded).
        When the channel is full the oldest message is dropped.
        """
        if self.closed:
            return False
        try:
            self.channel.put_nowait(message)
        except asyncio.QueueFull:
            try:
                self.channel.get_nowait()
            except asyncio.QueueEmpty:
                pass
            try:
                self.channel.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Session %s channel full, dropping message", self.session_id)
                return False
        return True


class SessionManager:
    """
    Keyed table of live sessions.

    Every mutation and every routing lookup runs inside one lock, so a reader
    never sees a half-registered or half-closed session. The lock is never held
    while a message is processed.
    """

    def __init__(self, handler: MessageHandler):
        """
        Args:
            handler: Coroutine processing one routed message for a session
        """
        self._handler = handler
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def open(self, session_id: str, channel: "asyncio.Queue[Dict[str, Any]]") -> Session:
        """Register a session. Raises DuplicateSession if the id is live."""
        async with self._lock:
            if session_id in self._sessions:
                raise DuplicateSession(session_id)
            session = Session(session_id=session_id, channel=channel)
            self._sessions[session_id] = session
        logger.info(f"Session {session_id} opened ({len(self._sessions)} active)")
        return session

    async def route(self, session_id: str, message: Dict[str, Any]) -> Session:
        """
        Hand a message to the session that owns it.

        The message is processed in its own task; its reply goes down the
        session's channel, not back to the caller.

        Raises:
            SessionNotFound: If the id is unknown or the session is closed
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.closed:
                raise SessionNotFound(session_id)

        task = asyncio.create_task(self._run(session, message))
        session.tasks.add(task)
        task.add_done_callback(session.tasks.discard)
        return session

    async def _run(self, session: Session, message: Dict[str, Any]) -> None:
        try:
            await self._handler(session, message)
        except Exception as e:
            logger.error(f"Error processing message for session {session.session_id}: {e}", exc_info=True)

    async def close(self, session_id: str) -> None:
        """Close a session. Unknown or already closed ids are a no-op."""
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return
            session.closed = True

        # Release anything still queued for a client that is gone
        while not session.channel.empty():
            session.channel.get_nowait()
        session.channel.put_nowait(END_OF_STREAM)
        logger.info(
            "Session %s closed after %.1fs (%d in-flight, %d active)",
            session_id,
            time.time() - session.created_at,
            len(session.tasks),
            len(self._sessions),
        )

    async def close_all(self) -> None:
        async with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.close(session_id)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
