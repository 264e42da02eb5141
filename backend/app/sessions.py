"""
In-memory registry of tutoring sessions served by the HTTP API.
"""

import logging
import threading
import uuid
from typing import Optional

from common.notify import RecordingNotifier
from tutor.equations import get_equation_by_id
from tutor.sequence import SolvingSequenceEngine

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, session_id: str) -> None:
        self.id = session_id
        self.notifier = RecordingNotifier()
        self.engine = SolvingSequenceEngine(self.notifier)

    def drain_messages(self) -> list[dict]:
        messages = [{"message": m, "level": lvl.value} for m, lvl in self.notifier.messages]
        self.notifier.clear()
        return messages


class SessionRegistry:

    def __init__(self, max_sessions: int = 500) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self.max_sessions = max_sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, equation_id: str) -> Session:
        """Open a session on catalog equation *equation_id*.

        Raises ``KeyError`` for an unknown equation.
        """
        definition = get_equation_by_id(equation_id)
        if definition is None:
            raise KeyError(equation_id)
        session = Session(uuid.uuid4().hex)
        session.engine.load_equation_sequence(definition)
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                oldest = next(iter(self._sessions))
                self._sessions.pop(oldest).engine.destroy()
                logger.info("Evicted session %s", oldest)
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.engine.destroy()
        return True

    def close_all(self) -> None:
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
        for session in sessions:
            session.engine.destroy()
