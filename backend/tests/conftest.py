import pytest

from buzzer.game.models import SessionSettings
from buzzer.game.registry import SessionRegistry
from buzzer.game.service import GameService
from buzzer.server import create_app


class FakeClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    CORS_ORIGINS = "*"
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = "threading"
    LOG_LEVEL = "WARNING"
    MAX_PLAYERS_PER_SESSION = 50
    BUZZ_COOLDOWN_MS = 100
    SESSION_MAX_AGE_SEC = 3600
    SWEEP_INTERVAL_SEC = 0


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def registry(clock):
    return SessionRegistry(default_settings=SessionSettings(), clock=clock)


@pytest.fixture()
def service(registry):
    return GameService(registry)


@pytest.fixture()
def session(service):
    return service.registry.create_session("host-sid")


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_and_socketio):
    flask_app, socketio = app_and_socketio
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect

    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
