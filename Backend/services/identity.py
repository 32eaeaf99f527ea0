# services/identity.py
"""
Firebase Authentication adapter.

Email/password and federated (Google) sign-in go through the Identity Toolkit
REST API with the project's web API key; ID token verification and sign-out
(refresh token revocation) go through the Admin SDK.

Every failure surfaces as AuthError with a message that can be shown as-is.
"""

from __future__ import annotations
import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Any, List, Optional
from urllib.parse import urlencode

import requests
from firebase_admin import auth as fb_auth
from firebase_admin.exceptions import FirebaseError

from services.quiz_service.errors import AuthError

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{method}"
DEFAULT_TIMEOUT = 10

# Identity Toolkit error codes -> what the user sees
_MESSAGES = {
    "EMAIL_NOT_FOUND": "Invalid email or password.",
    "INVALID_PASSWORD": "Invalid email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "INVALID_EMAIL": "Please enter a valid email address.",
    "MISSING_PASSWORD": "Please enter a password.",
    "USER_DISABLED": "This account has been disabled.",
    "EMAIL_EXISTS": "An account with this email already exists.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "OPERATION_NOT_ALLOWED": "This sign-in method is not enabled.",
    "INVALID_IDP_RESPONSE": "The sign-in provider rejected the request.",
    "FEDERATED_USER_ID_ALREADY_LINKED": "This account is already linked to another user.",
}


@dataclass
class Principal:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def label(self) -> str:
        """Name for greetings: display name, else the local part of the email."""
        if self.display_name:
            return self.display_name
        return (self.email or "").split("@")[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "display_name": self.display_name,
            "id_token": self.id_token,
            "refresh_token": self.refresh_token,
        }


# ============================================================================
# Auth state notifications
# ============================================================================

AuthListener = Callable[[str, Optional[Principal]], None]


class AuthState:
    """Publishes (uid, principal) on sign-in and (uid, None) on sign-out."""

    def __init__(self):
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: AuthListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def notify(self, uid: str, principal: Optional[Principal]):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(uid, principal)


auth_state = AuthState()


# ============================================================================
# Identity Toolkit REST
# ============================================================================

def _api_key() -> str:
    key = os.getenv("FIREBASE_WEB_API_KEY")
    if not key:
        raise AuthError("Sign-in is not configured on the server.", detail="FIREBASE_WEB_API_KEY is not set")
    return key


def _timeout() -> float:
    try:
        return float(os.getenv("IDENTITY_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        return DEFAULT_TIMEOUT


def _message_for(code: str) -> str:
    # WEAK_PASSWORD comes back as "WEAK_PASSWORD : Password should be at least 6 characters"
    key = code.split(":", 1)[0].strip()
    return _MESSAGES.get(key, "Authentication failed. Please try again.")


def _call(method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    url = IDENTITY_URL.format(method=method)
    try:
        resp = requests.post(url, params={"key": _api_key()}, json=payload, timeout=_timeout())
    except requests.RequestException as e:
        logger.error("Identity Toolkit %s unreachable: %s", method, e)
        raise AuthError("Could not reach the sign-in service. Check your connection.", detail=str(e)) from e

    try:
        data = resp.json()
    except ValueError:
        data = {}

    if resp.status_code != 200:
        code = ((data.get("error") or {}).get("message")) or f"HTTP {resp.status_code}"
        logger.warning("Identity Toolkit %s failed: %s", method, code)
        raise AuthError(_message_for(code), detail=code)
    return data


def _principal(data: Dict[str, Any]) -> Principal:
    if not data.get("localId"):
        raise AuthError("Authentication failed. Please try again.", detail="response has no localId")
    return Principal(
        uid=data["localId"],
        email=data.get("email"),
        display_name=data.get("displayName") or None,
        id_token=data.get("idToken"),
        refresh_token=data.get("refreshToken"),
    )


def sign_in_with_password(email: str, password: str) -> Principal:
    principal = _principal(_call("signInWithPassword", {
        "email": email,
        "password": password,
        "returnSecureToken": True,
    }))
    logger.info("Signed in with password: %s", principal.uid)
    auth_state.notify(principal.uid, principal)
    return principal


def sign_up_with_password(email: str, password: str) -> Principal:
    principal = _principal(_call("signUp", {
        "email": email,
        "password": password,
        "returnSecureToken": True,
    }))
    logger.info("Signed up: %s", principal.uid)
    auth_state.notify(principal.uid, principal)
    return principal


def sign_in_with_federated_provider(id_token: str, provider_id: str = "google.com",
                                    request_uri: str = "http://localhost") -> Principal:
    """Exchange a provider credential (e.g. a Google ID token) for a Firebase session."""
    if not id_token:
        raise AuthError("Sign-in was cancelled.", detail="missing provider id_token")
    data = _call("signInWithIdp", {
        "postBody": urlencode({"id_token": id_token, "providerId": provider_id}),
        "requestUri": request_uri,
        "returnIdpCredential": True,
        "returnSecureToken": True,
    })
    principal = _principal(data)
    logger.info("Signed in with %s: %s", provider_id, principal.uid)
    auth_state.notify(principal.uid, principal)
    return principal


def sign_out(uid: str) -> None:
    """Revoke the user's refresh tokens and tell subscribers the session is over."""
    try:
        fb_auth.revoke_refresh_tokens(uid)
    except FirebaseError as e:
        logger.error("Revoking tokens failed for %s: %s", uid, e)
        raise AuthError("Sign-out failed. Please try again.", detail=str(e)) from e
    auth_state.notify(uid, None)
    logger.info("Signed out: %s", uid)


def verify_id_token(token: str) -> Principal:
    try:
        decoded = fb_auth.verify_id_token(token)
    except (ValueError, FirebaseError) as e:
        raise AuthError("Your session has expired. Please sign in again.", detail=str(e)) from e
    return Principal(
        uid=decoded["uid"],
        email=decoded.get("email"),
        display_name=decoded.get("name"),
        id_token=token,
    )
