"""Push channel for session events.

Group membership is whatever the ConnectionTracker currently holds for the
session id; there is no hidden Socket.IO room state. Delivery is best
effort: a member that cannot be reached is logged and skipped. Callers emit
while holding the session lock, which keeps events for one session in
broadcast order.
"""

import logging
from typing import Any, Dict, Optional

from .registry import ConnectionTracker

NAMESPACE = '/ws'


class Broadcaster:
    def __init__(self, tracker: ConnectionTracker, logger: Optional[logging.Logger] = None):
        self.tracker = tracker
        self.logger = logger or logging.getLogger(__name__)

    def broadcast(self, session_id: str, event: str, payload: Dict[str, Any]) -> int:
        """Deliver ``event`` to every member of the session. Returns how many sends succeeded."""
        delivered = 0
        for connection_id in self.tracker.members(session_id):
            try:
                self.send(connection_id, event, payload)
            except Exception:
                self.logger.exception(
                    f"[broadcast-failed] session={session_id} event={event} connection={connection_id}"
                )
                continue
            delivered += 1
        return delivered

    def send(self, connection_id: str, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class SocketIOBroadcaster(Broadcaster):
    def __init__(self, tracker: ConnectionTracker, socketio, namespace: str = NAMESPACE, logger=None):
        super().__init__(tracker, logger)
        self.socketio = socketio
        self.namespace = namespace

    def send(self, connection_id, event, payload):
        # Use socketio.emit since this is called from background tasks too
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)
