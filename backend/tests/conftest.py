import heapq
import itertools
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
from impostor.game.models import SKIP
from impostor.game.service import GameService
from impostor.game.timers import TimerHandle
from impostor.server import create_app


NAMES = ['Ana', 'Ben', 'Caro', 'Dani', 'Eli', 'Fay', 'Gus', 'Hana', 'Ivo', 'Jo', 'Kai', 'Lu', 'Mo']


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = 'threading'
    WORDS_FILE = ''


class ManualScheduler:
    """Virtual clock: callbacks only run when a test advances time."""

    def __init__(self):
        self.now = 0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        handle = TimerHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                callback()
        self.now = target

    def pending(self):
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def broadcast(self, room_id, event, payload=None):
        self.sent.append((room_id, event, payload))

    def send(self, player_id, event, payload=None):
        self.sent.append((player_id, event, payload))

    def named(self, event, to=None):
        return [p for t, e, p in self.sent if e == event and (to is None or t == to)]

    def last(self, event, to=None):
        found = self.named(event, to=to)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()


class GameDriver:
    """Walks a room through the phases on the virtual clock."""

    def __init__(self, service, scheduler, transport):
        self.service = service
        self.scheduler = scheduler
        self.transport = transport
        self.config = service.config

    def advance(self, seconds):
        self.scheduler.advance(seconds)

    def lobby(self, count=4):
        room = self.service.create_room('p1', NAMES[0])
        for i in range(2, count + 1):
            self.service.join_room(f'p{i}', room.id, NAMES[i - 1])
        return room

    def start(self, count=4):
        """Start a match and stop at the first clue turn."""
        room = self.lobby(count)
        self.service.start_game('p1', room.id)
        self.advance(self.config.COUNTDOWN_SEC + self.config.SETUP_DELAY_SEC)
        assert room.phase == 'CLUE'
        return room

    def impostor(self, room):
        return room.get_player(room.imposter_id)

    def innocents(self, room):
        return [p for p in room.living_players() if p.id != room.imposter_id]

    def play_clues(self, room):
        while room.phase == 'CLUE':
            current = self.service.engine.current_player(room)
            self.service.submit_clue(current.id, room.id, f'hint from {current.name}')
        assert room.phase == 'VOTE'

    def to_vote(self, count=4):
        room = self.start(count)
        self.play_clues(room)
        return room

    def vote(self, room, choices):
        for voter_id, target_id in choices.items():
            self.service.cast_vote(voter_id, room.id, target_id)

    def finish_vote(self):
        self.advance(self.config.VOTE_FINAL_WINDOW_SEC)

    def to_resolution(self, count=4):
        room = self.to_vote(count)
        imp = self.impostor(room)
        choices = {p.id: imp.id for p in self.innocents(room)}
        choices[imp.id] = SKIP
        self.vote(room, choices)
        self.finish_vote()
        assert room.phase == 'RESOLUTION'
        return room

    def to_steal(self, count=4):
        room = self.to_vote(count)
        self.vote(room, {p.id: SKIP for p in room.living_players()})
        self.finish_vote()
        assert room.phase == 'STEAL_LIFE'
        return room


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def service(transport, scheduler):
    return GameService(transport, scheduler, config=TestConfig, rng=random.Random(1234))


@pytest.fixture()
def driver(service, scheduler, transport):
    return GameDriver(service, scheduler, transport)


@pytest.fixture()
def app_bundle(scheduler):
    app, socketio = create_app(TestConfig, scheduler=scheduler)
    return app, socketio


@pytest.fixture()
def flask_app(app_bundle):
    application, _ = app_bundle
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_bundle):
    application, socketio = app_bundle
    clients = []

    def _make():
        test_client = socketio.test_client(application, flask_test_client=application.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
