"""In-memory registry of logging sessions."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from meal_logger.domain.errors import SessionNotFoundError
from meal_logger.domain.sessions import LoggingSession


class SessionStore(Protocol):
    """Lookup interface for logging sessions."""

    def create(self) -> LoggingSession:
        """Create and register a new session."""

    def get(self, session_id: UUID) -> LoggingSession:
        """Return a session or raise ``SessionNotFoundError``."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local session store; contents vanish on restart."""

    _sessions: dict[UUID, LoggingSession] = field(default_factory=dict)

    def create(self) -> LoggingSession:
        session = LoggingSession()
        self._sessions[session.id] = session
        return session

    def get(self, session_id: UUID) -> LoggingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError()
        return session
