import os
import sys
import pytest

# Ensure the backend root (containing the `tapsprint` package) and the test doubles are on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)
if CURRENT_DIR not in sys.path:
    sys.path.insert(0, CURRENT_DIR)

from tapsprint import create_app, db, socketio
from tapsprint.services.sprint.broadcast import NAMESPACE
from tapsprint.services.sprint.orchestrator import SprintOrchestrator
from tapsprint.services.sprint.persistence import SprintResultStore
from tapsprint.services.sprint.registry import ConnectionTracker, SessionRegistry

from doubles import ManualScheduler, RecordingBroadcaster


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SPRINT_COUNTDOWN_SEC = 5
    SPRINT_DURATION_MS = 15000
    SPRINT_EVICTION_GRACE_SEC = 30
    # Idle reaping is exercised explicitly where needed
    SPRINT_IDLE_TIMEOUT_SEC = 0
    SPRINT_RESULT_WRITE_ATTEMPTS = 2
    TOKEN_ALGORITHM = 'HS256'
    TOKEN_TTL_SEC = 3600


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def flask_app(scheduler):
    application = create_app(TestConfig, scheduler=scheduler)
    with application.app_context():
        # Ensure models are imported so tables are created
        import tapsprint.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sprint(flask_app, scheduler):
    """An orchestrator wired to a recording broadcaster instead of Socket.IO."""
    tracker = ConnectionTracker()
    return SprintOrchestrator(
        flask_app,
        registry=SessionRegistry(),
        tracker=tracker,
        broadcaster=RecordingBroadcaster(tracker),
        scheduler=scheduler,
        store=SprintResultStore(flask_app, attempts=2),
    )


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace=NAMESPACE)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except RuntimeError:
            pass


@pytest.fixture()
def make_user(flask_app):
    from tapsprint.models import User

    def _make(username, role='player'):
        user = User(username=username, role=role)
        db.session.add(user)
        db.session.commit()
        return user

    return _make
