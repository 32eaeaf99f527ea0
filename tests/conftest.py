"""Shared fixtures: in-memory Firestore, manual session clock, Flask client."""

import copy

import pytest
from google.api_core.exceptions import ServiceUnavailable

from services.quiz_service import quiz_flow, utils
from services.quiz_service.session import SessionRegistry, registry as default_registry


# ---------------------------------------------------------------------------
# Firestore fake
# ---------------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def collection(self, name):
        return FakeCollection(self._db, f"{self.path}/{name}")

    def get(self):
        self._db.check("get", self.path)
        return FakeSnapshot(self.id, self._db.docs.get(self.path))

    def set(self, data, merge=False):
        self._db.check("set", self.path)
        self._db.writes.append(self.path)
        data = copy.deepcopy(data)
        if merge and self.path in self._db.docs:
            self._db.docs[self.path].update(data)
        else:
            self._db.docs[self.path] = data


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self.path = path

    def document(self, doc_id):
        return FakeDocument(self._db, f"{self.path}/{doc_id}")

    def stream(self):
        self._db.check("stream", self.path)
        prefix = self.path + "/"
        for path, data in list(self._db.docs.items()):
            rest = path[len(prefix):] if path.startswith(prefix) else None
            if rest and "/" not in rest:
                yield FakeSnapshot(rest, data)


class FakeFirestore:
    """Documents keyed by slash path. `fail(op, path)` makes matching calls raise."""

    def __init__(self):
        self.docs = {}
        self.writes = []
        self._failures = []

    def collection(self, name):
        return FakeCollection(self, name)

    def fail(self, op, path):
        self._failures.append((op, path))

    def check(self, op, path):
        for fail_op, fail_path in self._failures:
            if fail_op in (op, "*") and path == fail_path:
                raise ServiceUnavailable(f"{op} {path} unavailable")

    def put(self, path, data):
        self.docs[path] = copy.deepcopy(data)


@pytest.fixture
def db(monkeypatch):
    fake = FakeFirestore()
    monkeypatch.setattr(utils, "get_db", lambda: fake)
    return fake


# ---------------------------------------------------------------------------
# Session clock
# ---------------------------------------------------------------------------

class ManualTicker:
    def __init__(self, on_tick):
        self.on_tick = on_tick
        self.starts = 0
        self.stops = 0

    def start(self):
        self.starts += 1

    def stop(self):
        self.stops += 1

    @property
    def stopped(self):
        return self.stops > 0

    def advance(self, seconds=1):
        for _ in range(seconds):
            self.on_tick()


class TickerFactory:
    def __init__(self):
        self.created = []

    def __call__(self, on_tick):
        ticker = ManualTicker(on_tick)
        self.created.append(ticker)
        return ticker

    @property
    def last(self):
        return self.created[-1]


@pytest.fixture
def tickers():
    return TickerFactory()


@pytest.fixture
def registry(tickers):
    reg = SessionRegistry()
    quiz_flow.configure(registry=reg, ticker_factory=tickers)
    yield reg
    quiz_flow.configure(registry=default_registry, ticker_factory=None)


# ---------------------------------------------------------------------------
# Flask
# ---------------------------------------------------------------------------

def fake_verify_id_token(token, *args, **kwargs):
    """'token-<uid>' is valid; anything else is rejected."""
    if not token.startswith("token-"):
        raise ValueError("Token is malformed")
    uid = token[len("token-"):]
    return {"uid": uid, "email": f"{uid}@example.com", "name": uid.capitalize()}


@pytest.fixture
def app(db, registry, monkeypatch):
    from firebase_admin import auth as fb_auth
    from app import create_app

    monkeypatch.setattr(fb_auth, "verify_id_token", fake_verify_id_token)
    app = create_app({"TESTING": True, "STREAK_TIMEZONE": "UTC"})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(uid="alice"):
    return {"Authorization": f"Bearer token-{uid}"}
