import os
import random
import sys

import pytest

# Ensure the backend root (containing the `impostor` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from impostor.config import Config
from impostor.game import coordinator
from impostor.game.models import Lobby, WordPair
from impostor.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    TRUST_PROXY_HEADERS = False
    DESCRIBE_DURATION_SEC = 0
    VOTE_DURATION_SEC = 0


@pytest.fixture()
def word_pair(monkeypatch):
    pair = WordPair('apple', 'pear')
    monkeypatch.setattr(coordinator, 'WORD_PAIRS', (pair,))
    return pair


@pytest.fixture()
def make_lobby():
    def _make(n, seed=7):
        lobby = Lobby(code='ABCDEF', host_id='p0', rng=random.Random(seed))
        for i in range(n):
            coordinator.add_player(lobby, f'p{i}', f'Player{i}')
        return lobby
    return _make


@pytest.fixture()
def app_and_socketio(monkeypatch):
    monkeypatch.setenv('SOCKETIO_ASYNC_MODE', 'threading')
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['lobby_registry']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_clients(flask_app, socketio):
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
