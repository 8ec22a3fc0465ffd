import json
import os
import random
import sys
import pytest

# Ensure the backend root (containing the `cubetag` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from cubetag import create_app, db, socketio
from cubetag.errors import ModerationError
from cubetag.models import Account
from cubetag.services.accounts import AccountStore
from cubetag.services.game.authority import GameAuthority
from cubetag.services.moderation import ModerationVerdict


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4


class RecordingEmitter:
    """Stands in for socketio.emit; keeps (event, data, to, skip_sid) tuples."""

    def __init__(self):
        self.events = []

    def __call__(self, event, data, to=None, skip_sid=None):
        self.events.append((event, data, to, skip_sid))

    def named(self, event):
        return [e for e in self.events if e[0] == event]

    def to(self, sid, event=None):
        return [e for e in self.events if e[2] == sid and (event is None or e[0] == event)]

    def clear(self):
        self.events = []


class FakeModeration:
    def __init__(self, configured=True, flagged=False, error=None):
        self.configured = configured
        self.flagged = flagged
        self.error = error
        self.calls = 0
        self.on_check = None

    def check(self, image):
        self.calls += 1
        if self.on_check:
            self.on_check()
        if self.error:
            raise ModerationError(self.error)
        return ModerationVerdict(flagged=self.flagged, scores={'sexual_display': 0.9 if self.flagged else 0.01})


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
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
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def moderation():
    return FakeModeration()


@pytest.fixture()
def authority(flask_app, emitter, moderation):
    return GameAuthority(
        emitter,
        AccountStore(),
        moderation,
        rng=random.Random(7),
        logger=flask_app.logger,
    )


@pytest.fixture()
def make_account(flask_app):
    def _make(username, password='password', achievements=None, skins=None, **fields):
        account = Account(username=username, **fields)
        account.set_password(password)
        if achievements is not None:
            account.unlocked_achievements = json.dumps(achievements)
        if skins is not None:
            account.unlocked_skins = json.dumps(skins)
        db.session.add(account)
        db.session.commit()
        return account
    return _make
