import os
import sys
import pytest

# Ensure the backend root (containing the `scoreboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from scoreboard import create_app, db, socketio
from scoreboard.services.match import clock


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    DEFAULT_FORMAT_TYPE = 'quarters'
    DEFAULT_PERIOD_DURATION_SEC = 600
    CLOCK_REDRAW_MS = 200
    CARD_REDRAW_MS = 1000
    CONTROLLER_DEBOUNCE_MS = 0
    LOGO_URL_PREFIX = '/logos'
    MAX_CONTENT_LENGTH = 1024 * 1024


@pytest.fixture()
def flask_app(tmp_path):
    config = type('Config', (TestConfig,), {'LOGO_UPLOAD_FOLDER': str(tmp_path / 'logos')})
    application = create_app(config)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scoreboard.models  # noqa: F401
        db.create_all()
    # Each request gets its own app context, so no test client inherits
    # another one's logged-in user from ``g``
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def register(test_client, username='operator', password='password'):
    res = test_client.post('/register', json={'username': username, 'password': password})
    assert res.status_code == 201
    return res.get_json()['user']


@pytest.fixture()
def make_operator(flask_app):
    """Factory for extra logged-in test clients."""
    def _make(username):
        test_client = flask_app.test_client()
        test_client.user = register(test_client, username)
        return test_client
    return _make


@pytest.fixture()
def auth_client(flask_app):
    test_client = flask_app.test_client()
    test_client.user = register(test_client)
    return test_client


@pytest.fixture()
def frozen_now(monkeypatch):
    """Pin the server wall clock; tests move it by assigning ``.value``."""
    class _Now:
        value = 1_000_000.0

    monkeypatch.setattr(clock, 'now', lambda: _Now.value)
    return _Now


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
