import os
import sys
import random
import pytest

# Ensure the backend root (containing the `stadtland` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from stadtland import create_app, db, socketio
from stadtland.services.game import SessionStateMachine
from stadtland.services.store import InMemorySessionStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_STORE = 'sql'
    RANDOM_SEED = 1234
    MAX_PLAYERS = 6
    MAX_CATEGORIES = 10
    CORS_ORIGINS = ['http://localhost:5173']
    DEFAULT_CATEGORIES = ['Stadt', 'Land', 'Fluss', 'Name', 'Tier', 'Beruf']
    LOG_LEVEL = 'DEBUG'


class FakeClock:
    """Deterministic clock; every call advances one second."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        self.now += 1.0
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import stadtland.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def store():
    return InMemorySessionStore()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def machine(store, clock):
    return SessionStateMachine(store, rng=random.Random(42), clock=clock)


@pytest.fixture()
def lobby(machine):
    """A waiting session hosted by Alice with Bob joined; returns its code."""
    code = machine.create_session('Alice')
    machine.join_session(code, 'Bob')
    return code


def check_invariants(doc):
    """Assert the session-document invariants that hold after every transition."""
    players = doc['players']
    assert 1 <= len(players) <= 6
    assert doc['host'] in players
    hosts = [name for name, p in players.items() if p['isHost']]
    assert hosts == [doc['host']]
    assert len(doc['categories']) <= 10
    used = doc.get('usedLetters') or []
    assert len(used) == len(set(used)) <= 26
    if doc['status'] in ('playing', 'paused'):
        assert doc.get('currentLetter') in used
    if doc['status'] == 'waiting':
        assert 'currentLetter' not in doc
    for record in doc.get('roundHistory') or []:
        assert record['letter'] in used
