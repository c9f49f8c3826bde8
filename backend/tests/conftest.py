import os
import sys
import pytest

# Ensure the backend root (containing the `spincricket` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from spincricket import create_app, engine, rooms, socketio
from spincricket.services.match import DeliveryEngine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    FRONTEND_URL = 'http://localhost:3000'
    BALL_QUOTA = 6
    WICKET_QUOTA = 3


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    engine.reset()
    rooms.clear()


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
def make_sio_client(flask_app):
    """Factory for extra socket clients; all are disconnected afterwards."""
    created = []

    def _make():
        c = socketio.test_client(flask_app, namespace='/ws')
        created.append(c)
        return c

    yield _make
    for c in created:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def match_engine():
    return DeliveryEngine(ball_quota=6, wicket_quota=3)


@pytest.fixture()
def started(match_engine):
    """Engine with room 'r1' started: P1 bowls, P2 bats."""
    match_engine.initialize('P1', 'r1')
    match_engine.admit_second_player('P2', 'r1')
    match_engine.start('r1')
    return match_engine
