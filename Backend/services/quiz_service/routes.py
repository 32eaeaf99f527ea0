# services/quiz_service/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from auth_middleware import require_auth

from . import quiz_flow, profile, utils
from .quiz_flow import UserContext

logger = logging.getLogger(__name__)

quiz_bp = Blueprint("quiz_bp", __name__)


def _ctx() -> UserContext:
    return UserContext.from_request_user(request.user)


def _run(label: str, fn, *args):
    """Call a flow function; anything unexpected becomes a 500 with the error text."""
    uid = request.user["uid"]
    try:
        return jsonify(fn(*args)), 200
    except Exception as e:
        logger.exception("[quiz/%s] Error for %s", label, uid)
        return jsonify({"ok": False, "error": str(e)}), 500

# -------------------- App session --------------------

@quiz_bp.post("/session/start")
@require_auth
def session_start():
    """
    Record today's login and check achievements. Call once after sign-in
    (the auth routes already do this for their own sign-ins).

    Request body (optional):
    {
        "today": "2025-03-14"   # client's local calendar day
    }
    """
    data = request.get_json(silent=True) or {}
    today = utils.client_login_day(data.get("today"))
    if data.get("today") and today is None:
        return jsonify({"ok": False, "error": "today must be an ISO date (YYYY-MM-DD) within a day of the server date"}), 400
    if today is None:
        today = utils.today_in(current_app.config.get("STREAK_TIMEZONE", "UTC"))
    return _run("session/start", quiz_flow.start_user_session, _ctx(), today)

# -------------------- Topics & quiz --------------------

@quiz_bp.get("/topics")
@require_auth
def topics():
    return _run("topics", quiz_flow.list_topics, _ctx())

@quiz_bp.post("/<topic>/start")
@require_auth
def start(topic):
    return _run("start", quiz_flow.start_quiz, _ctx(), topic)

@quiz_bp.post("/answer")
@require_auth
def answer():
    """
    Request body:
    {
        "option": "for"
    }

    Response:
    {
        "ok": true,
        "is_correct": true,
        "points": 10,
        "correct_answer": "for",
        "score": 10,
        "notice": {"title": "Correct!", "text": "You earned 10 points!", "icon": "success"},
        "session": {...}
    }
    """
    data = request.get_json(silent=True) or {}
    option = data.get("option")
    if not isinstance(option, str) or not option:
        return jsonify({"ok": False, "error": "option required"}), 400
    logger.info("[quiz/answer] %s answered %r", request.user["uid"], option)
    return _run("answer", quiz_flow.answer, _ctx(), option)

@quiz_bp.post("/acknowledge")
@require_auth
def acknowledge():
    """Dismiss the feedback popup; moves to the next question or completes the topic."""
    return _run("acknowledge", quiz_flow.acknowledge, _ctx())

@quiz_bp.post("/quit")
@require_auth
def quit_quiz():
    return _run("quit", quiz_flow.quit_quiz, _ctx())

@quiz_bp.post("/<topic>/retry")
@require_auth
def retry(topic):
    return _run("retry", quiz_flow.retry_topic, _ctx(), topic)

@quiz_bp.get("/state")
@require_auth
def state():
    return _run("state", quiz_flow.quiz_state, _ctx())

@quiz_bp.get("/result")
@require_auth
def result():
    return _run("result", quiz_flow.quiz_result, _ctx())

@quiz_bp.post("/reset")
@require_auth
def reset():
    return _run("reset", quiz_flow.reset_progress, _ctx())

# -------------------- Leaderboard / achievements / profile --------------------

@quiz_bp.get("/leaderboard")
@require_auth
def leaderboard():
    return _run("leaderboard", quiz_flow.get_leaderboard, _ctx())

@quiz_bp.get("/achievements")
@require_auth
def achievements():
    return _run("achievements", quiz_flow.get_achievements, _ctx())

@quiz_bp.get("/profile")
@require_auth
def get_profile():
    return _run("profile", profile.get_profile, _ctx())

@quiz_bp.post("/profile")
@require_auth
def update_profile():
    data = request.get_json(silent=True) or {}
    display_name = data.get("display_name")
    bio = data.get("bio", "")
    if not isinstance(display_name, str) or not isinstance(bio, str):
        return jsonify({"ok": False, "error": "display_name and bio must be strings"}), 400
    return _run("profile", profile.update_profile, _ctx(), display_name, bio)
