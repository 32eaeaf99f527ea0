# routes/auth.py
"""
Sign-in / sign-up / sign-out.

A successful sign-in also starts the user's app session (progress load, login
streak, achievement check), so the response already carries the streak and any
unlock notices the client should pop up.
"""
from __future__ import annotations
import logging
from flask import Blueprint, request, jsonify, current_app

from auth_middleware import require_auth
from services import identity
from services.quiz_service import notices, quiz_flow, utils
from services.quiz_service.errors import AuthError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__)

# sign-out anywhere (route or token revocation) tears down the live quiz
_unsubscribe = identity.auth_state.subscribe(quiz_flow.on_auth_state_changed)


def _today(data):
    """Client's calendar day when it sends a plausible one, else today in STREAK_TIMEZONE."""
    day = utils.client_login_day(data.get("today"))
    if day is not None:
        return day
    return utils.today_in(current_app.config.get("STREAK_TIMEZONE", "UTC"))


def _signed_in(principal: identity.Principal, data, greeting: str):
    ctx = quiz_flow.UserContext(uid=principal.uid, display_name=principal.display_name, email=principal.email)
    session = quiz_flow.start_user_session(ctx, _today(data))
    welcome = notices.success(greeting, f"Logged in, {principal.label}")
    session["notices"] = [welcome] + list(session.get("notices", []))
    return jsonify({"ok": True, "user": principal.to_dict(), "session": session}), 200


def _auth_failed(e: AuthError, title: str):
    logger.warning("%s: %s (%s)", title, e.message, e.detail)
    return jsonify({"ok": False, "error": e.message, "notice": notices.from_exception(e, title)}), 401


def _credentials(data):
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    return email, password


@auth_bp.post("/signin")
def signin():
    data = request.get_json(silent=True) or {}
    email, password = _credentials(data)
    if not (email and password):
        return jsonify({"ok": False, "error": "email and password required"}), 400
    try:
        principal = identity.sign_in_with_password(email, password)
    except AuthError as e:
        return _auth_failed(e, "Sign In Failed")
    return _signed_in(principal, data, "Signed in successfully!")


@auth_bp.post("/signup")
def signup():
    data = request.get_json(silent=True) or {}
    email, password = _credentials(data)
    if not (email and password):
        return jsonify({"ok": False, "error": "email and password required"}), 400
    try:
        principal = identity.sign_up_with_password(email, password)
    except AuthError as e:
        return _auth_failed(e, "Sign Up Failed")
    return _signed_in(principal, data, "Signed up successfully!")


@auth_bp.post("/federated")
def federated():
    """
    Request body:
    {
        "id_token": "<Google ID token from the client-side popup>",
        "provider_id": "google.com"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        principal = identity.sign_in_with_federated_provider(
            data.get("id_token") or "",
            data.get("provider_id") or "google.com",
        )
    except AuthError as e:
        return _auth_failed(e, "Sign In Failed")
    return _signed_in(principal, data, "Signed in with Google successfully!")


@auth_bp.post("/signout")
@require_auth
def signout():
    uid = request.user["uid"]
    try:
        identity.sign_out(uid)
    except AuthError as e:
        logger.exception("Sign-out failed for %s", uid)
        return jsonify({"ok": False, "error": e.message, "notice": notices.from_exception(e)}), 500
    return jsonify({"ok": True, "notice": notices.info("Signed Out", "See you next time!")}), 200
