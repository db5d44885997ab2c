"""Error taxonomy for sprint sessions.

Every error carries a stable ``code`` for socket clients and an HTTP
``status`` for the REST routes. None of them is fatal to the process.
"""


class SprintError(Exception):
    code = 'sprint_error'
    status = 400
    message = 'Sprint error'

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class SessionNotFound(SprintError):
    code = 'session_not_found'
    status = 404
    message = 'Game not found'

    def __init__(self, session_id: str = None):
        super().__init__(f'Game not found: {session_id}' if session_id else None)
        self.session_id = session_id


class SessionAlreadyStarted(SprintError):
    code = 'session_already_started'
    status = 409
    message = 'Game already started or finished'

    def __init__(self, session_id: str = None, status: str = None):
        super().__init__()
        self.session_id = session_id
        self.session_status = status


class InvalidEvent(SprintError):
    code = 'invalid_event'
    status = 400
    message = 'Malformed event payload'


class PersistenceWriteFailure(SprintError):
    """Raised by the result store once every write attempt has failed.

    The orchestrator logs it; it never reaches a connected client.
    """
    code = 'persistence_write_failure'
    status = 500
    message = 'Failed to save sprint result'
