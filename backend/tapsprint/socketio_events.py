from flask import current_app, request
from flask_socketio import emit

from tapsprint import socketio
from tapsprint.identity import resolve_identity
from tapsprint.services.sprint import get_orchestrator
from tapsprint.services.sprint.broadcast import NAMESPACE
from tapsprint.services.sprint.errors import InvalidEvent, SprintError

MAX_DISPLAY_NAME = 64


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _session_id_from(data) -> str:
    """Boundary validation: every sprint event must name a session."""
    if not isinstance(data, dict):
        raise InvalidEvent('payload must be an object')
    session_id = data.get('session_id')
    if not isinstance(session_id, str) or not session_id.strip():
        raise InvalidEvent('session_id is required')
    return session_id.strip()


def _display_name_from(data):
    name = data.get('display_name')
    if name is None:
        return None
    if not isinstance(name, str):
        raise InvalidEvent('display_name must be a string')
    return name.strip()[:MAX_DISPLAY_NAME] or None


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws', 'connection_id': _get_sid()})


def handle_disconnect(*args):
    get_orchestrator().disconnect(_get_sid())


def handle_join_sprint(data):
    try:
        session_id = _session_id_from(data)
        display_name = _display_name_from(data)
        identity = resolve_identity(data.get('token'))
        state = get_orchestrator().join(
            session_id,
            _get_sid(),
            display_name=display_name,
            user_id=identity.user_id if identity else None,
        )
    except SprintError as exc:
        current_app.logger.info(f"[join-rejected] connection={_get_sid()} code={exc.code}")
        emit('error', exc.to_dict())
        return
    emit('joined', state)


def handle_tap(data):
    try:
        session_id = _session_id_from(data)
    except InvalidEvent as exc:
        emit('error', exc.to_dict())
        return
    get_orchestrator().tap(session_id, _get_sid())


def handle_leave_sprint(data=None):
    if get_orchestrator().disconnect(_get_sid()):
        emit('left', {'connection_id': _get_sid()})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers.

    Only one namespace is served: sprint broadcasts address connections by
    their sid on that namespace.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join-sprint': handle_join_sprint,
        'tap': handle_tap,
        'leave-sprint': handle_leave_sprint,
        'ping': handle_ping,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=namespace)
