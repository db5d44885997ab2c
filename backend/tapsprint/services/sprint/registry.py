import threading
from typing import Dict, List, Optional

from .session import SprintSession, generate_session_id


class SessionRegistry:
    """Owns the session id -> SprintSession mapping.

    The internal lock only covers the dict itself. Session state is guarded
    by each session's own lock, so unrelated games never contend here for
    longer than a lookup.
    """

    def __init__(self):
        self._sessions: Dict[str, SprintSession] = {}
        self._lock = threading.Lock()

    def create(self, window_duration_ms: int, countdown_seconds: int, now: float) -> SprintSession:
        with self._lock:
            session_id = generate_session_id()
            while session_id in self._sessions:
                session_id = generate_session_id()
            session = SprintSession(
                id=session_id,
                window_duration_ms=window_duration_ms,
                countdown_seconds=countdown_seconds,
                created_at=now,
            )
            self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> Optional[SprintSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[SprintSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._sessions


class ConnectionTracker:
    """connection id -> id of the session that connection last joined."""

    def __init__(self):
        self._by_connection: Dict[str, str] = {}
        self._by_session: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def track(self, connection_id: str, session_id: str) -> Optional[str]:
        """Associate a connection with a session, returning the previous session id."""
        with self._lock:
            previous = self._by_connection.get(connection_id)
            if previous == session_id:
                return previous
            if previous is not None:
                self._discard_member(previous, connection_id)
            self._by_connection[connection_id] = session_id
            self._by_session.setdefault(session_id, []).append(connection_id)
            return previous

    def session_for(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._by_connection.get(connection_id)

    def untrack(self, connection_id: str, session_id: str = None) -> Optional[str]:
        """Forget a connection. With ``session_id`` only forget it if it still points there."""
        with self._lock:
            current = self._by_connection.get(connection_id)
            if current is None or (session_id is not None and current != session_id):
                return None
            del self._by_connection[connection_id]
            self._discard_member(current, connection_id)
            return current

    def members(self, session_id: str) -> List[str]:
        with self._lock:
            return list(self._by_session.get(session_id, ()))

    def forget_session(self, session_id: str) -> List[str]:
        with self._lock:
            gone = self._by_session.pop(session_id, [])
            for cid in gone:
                self._by_connection.pop(cid, None)
            return gone

    def _discard_member(self, session_id: str, connection_id: str) -> None:
        members = self._by_session.get(session_id)
        if not members:
            return
        if connection_id in members:
            members.remove(connection_id)
        if not members:
            del self._by_session[session_id]

    def __len__(self):
        with self._lock:
            return len(self._by_connection)
