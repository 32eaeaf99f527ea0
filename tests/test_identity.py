"""Identity Toolkit calls, error mapping and auth-state notifications."""

import pytest
import requests
from firebase_admin import auth as fb_auth
from firebase_admin.exceptions import FirebaseError

from services import identity
from services.quiz_service.errors import AuthError


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("FIREBASE_WEB_API_KEY", "test-key")


@pytest.fixture
def posts(monkeypatch):
    calls = []
    responses = []

    def fake_post(url, params=None, json=None, timeout=None):
        calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        return responses.pop(0)

    monkeypatch.setattr(requests, "post", fake_post)
    return calls, responses


@pytest.fixture
def events():
    seen = []
    unsubscribe = identity.auth_state.subscribe(lambda uid, p: seen.append((uid, p)))
    yield seen
    unsubscribe()


def _ok(uid="u1", **extra):
    payload = {"localId": uid, "email": f"{uid}@example.com", "idToken": "id", "refreshToken": "rt"}
    payload.update(extra)
    return FakeResponse(200, payload)


def test_sign_in_with_password(posts, events):
    calls, responses = posts
    responses.append(_ok(displayName="Alice"))

    principal = identity.sign_in_with_password("u1@example.com", "secret")

    assert principal.uid == "u1"
    assert principal.label == "Alice"
    assert calls[0]["url"].endswith("accounts:signInWithPassword")
    assert calls[0]["params"] == {"key": "test-key"}
    assert calls[0]["json"]["returnSecureToken"] is True
    assert events == [("u1", principal)]


def test_label_falls_back_to_email_local_part(posts):
    _, responses = posts
    responses.append(_ok())
    assert identity.sign_up_with_password("u1@example.com", "secret").label == "u1"


def test_bad_credentials_map_to_friendly_message(posts, events):
    _, responses = posts
    responses.append(FakeResponse(400, {"error": {"message": "INVALID_LOGIN_CREDENTIALS"}}))

    with pytest.raises(AuthError) as exc:
        identity.sign_in_with_password("u1@example.com", "wrong")
    assert exc.value.message == "Invalid email or password."
    assert events == []


def test_weak_password_message_with_suffix(posts):
    _, responses = posts
    responses.append(FakeResponse(400, {"error": {"message": "WEAK_PASSWORD : Password should be at least 6 characters"}}))
    with pytest.raises(AuthError, match="at least 6"):
        identity.sign_up_with_password("u1@example.com", "123")


def test_network_failure(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "post", boom)
    with pytest.raises(AuthError, match="Could not reach"):
        identity.sign_in_with_password("u1@example.com", "secret")


def test_missing_api_key(monkeypatch, posts):
    monkeypatch.delenv("FIREBASE_WEB_API_KEY")
    with pytest.raises(AuthError, match="not configured"):
        identity.sign_in_with_password("u1@example.com", "secret")


def test_federated_sign_in_posts_provider_credential(posts):
    calls, responses = posts
    responses.append(_ok("g1"))

    principal = identity.sign_in_with_federated_provider("google-token")

    assert principal.uid == "g1"
    body = calls[0]["json"]
    assert calls[0]["url"].endswith("accounts:signInWithIdp")
    assert "id_token=google-token" in body["postBody"]
    assert "providerId=google.com" in body["postBody"]


def test_federated_cancelled_without_token(posts):
    calls, _ = posts
    with pytest.raises(AuthError, match="cancelled"):
        identity.sign_in_with_federated_provider("")
    assert calls == []


def test_sign_out_revokes_and_notifies(monkeypatch, events):
    revoked = []
    monkeypatch.setattr(fb_auth, "revoke_refresh_tokens", lambda uid: revoked.append(uid))

    identity.sign_out("u1")

    assert revoked == ["u1"]
    assert events == [("u1", None)]


def test_failed_sign_out_leaves_subscribers_alone(monkeypatch, events):
    def revoke(uid):
        raise FirebaseError("unavailable", "auth backend down")

    monkeypatch.setattr(fb_auth, "revoke_refresh_tokens", revoke)

    with pytest.raises(AuthError, match="Sign-out failed"):
        identity.sign_out("u1")
    assert events == []


def test_unsubscribe_stops_notifications():
    seen = []
    unsubscribe = identity.auth_state.subscribe(lambda uid, p: seen.append(uid))
    unsubscribe()
    identity.auth_state.notify("u1", None)
    assert seen == []


def test_verify_id_token(monkeypatch):
    monkeypatch.setattr(fb_auth, "verify_id_token", lambda token: {"uid": "u1", "name": "Alice"})
    principal = identity.verify_id_token("tok")
    assert (principal.uid, principal.display_name, principal.id_token) == ("u1", "Alice", "tok")

    def reject(token):
        raise ValueError("expired")

    monkeypatch.setattr(fb_auth, "verify_id_token", reject)
    with pytest.raises(AuthError):
        identity.verify_id_token("tok")
