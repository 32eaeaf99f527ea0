# services/quiz_service/quiz_flow.py
"""
Orchestration: what happens on sign-in, while a quiz runs, and when it ends.

Every public function takes the caller's UserContext instead of reading a global
"current user". Store failures are caught here, logged, and reported as error
notices; they never undo what already happened in memory.

Completion / quit chain (strictly in order):
    save progress -> save high score -> reload progress -> reload high scores
    -> re-evaluate achievements
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Any, List, Optional

from . import achievements, leaderboard as board, notices, store, streak
from .errors import StoreError
from .models import AnswerResult, HighScoreRecord, ProgressRecord
from .question_bank import TOPICS, get_topic, topic_summary
from .session import ANSWERING, LOCKED, QuizSession, SessionRegistry, registry as default_registry

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class UserContext:
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def label(self) -> str:
        """Name shown on the leaderboard and in notices."""
        return self.display_name or self.email or ""

    @classmethod
    def from_request_user(cls, user: Dict[str, Any]) -> "UserContext":
        return cls(uid=user["uid"], display_name=user.get("name"), email=user.get("email"))

# Registry and ticker used for new sessions; tests swap these out.
_registry: SessionRegistry = default_registry
_ticker_factory = None

def configure(registry: Optional[SessionRegistry] = None, ticker_factory=None):
    global _registry, _ticker_factory
    if registry is not None:
        _registry = registry
    _ticker_factory = ticker_factory

def get_registry() -> SessionRegistry:
    return _registry

def _error(exc: Exception, text: Optional[str] = None) -> Dict[str, Any]:
    note = notices.from_exception(exc)
    if text:
        note["text"] = text
    return {"ok": False, "error": note["text"], "notice": note}

# ============================================================================
# Sign-in
# ============================================================================

def _refresh_achievements(ctx: UserContext, progress: Dict[str, ProgressRecord], streak_value: int,
                          login_days: int) -> Dict[str, Any]:
    scores = store.load_high_scores()
    inputs = achievements.AchievementInputs(
        user_id=ctx.uid,
        progress=progress,
        scores=scores,
        streak=streak_value,
        login_days=login_days,
    )
    return achievements.evaluate_and_save(inputs)

def start_user_session(ctx: UserContext, today: date) -> Dict[str, Any]:
    """
    Once per authenticated session: load progress and high scores, record the
    login for the streak, then evaluate achievements.
    """
    try:
        progress = store.load_progress(ctx.uid)
        own_scores = store.load_high_scores(ctx.uid)
        update = streak.record_login(ctx.uid, ctx.label, today)
        result = _refresh_achievements(ctx, progress, update.streak, update.login_day_count)
    except StoreError as e:
        logger.exception("Session start failed for %s", ctx.uid)
        return _error(e, "Failed to update achievements. Please check your permissions or try again later.")

    session_notices: List[Dict[str, Any]] = []
    if update.notice():
        session_notices.append(update.notice())
    session_notices.extend(result["notices"])

    return {
        "ok": True,
        "streak": update.streak,
        "login_days": update.login_day_count,
        "total_score": sum(s.score for s in own_scores),
        "progress": {topic: record.to_dict() for topic, record in progress.items()},
        "achievements_unlocked": result["unlocked"],
        "notices": session_notices,
    }

def end_user_session(uid: str):
    """Sign-out: tear down whatever quiz was live for this user."""
    _registry.drop(uid)

def on_auth_state_changed(uid: str, principal) -> None:
    """AuthState listener: a sign-out (principal None) ends the user's quiz."""
    if principal is None:
        logger.info("Auth state cleared for %s, closing quiz session", uid)
        end_user_session(uid)

# ============================================================================
# Topics
# ============================================================================

def list_topics(ctx: UserContext) -> Dict[str, Any]:
    try:
        progress = store.load_progress(ctx.uid)
        own_scores = store.load_high_scores(ctx.uid)
    except StoreError as e:
        logger.exception("Loading topics failed for %s", ctx.uid)
        return _error(e)

    topics = []
    for topic in TOPICS:
        completed = min(progress[topic.name].completed, topic.question_count) if topic.name in progress else 0
        total = topic.question_count
        entry = topic_summary(topic)
        entry.update({
            "completed": completed,
            "percentage": round(completed / total * 100, 1) if total else 0.0,
            "is_completed": completed == total,
        })
        topics.append(entry)

    return {
        "ok": True,
        "topics": topics,
        "total_score": sum(s.score for s in own_scores),
    }

# ============================================================================
# Persistence handlers wired into the session callbacks
# ============================================================================

def _persist(ctx: UserContext, topic_name: str, record: ProgressRecord, outcome: Dict[str, Any]):
    """
    Write one topic's outcome and re-evaluate achievements. Fills `outcome`
    with either the fresh totals or an error notice. Never raises StoreError.
    """
    outcome.clear()
    try:
        progress = store.load_progress(ctx.uid)
        progress[topic_name] = record
        store.save_progress(ctx.uid, progress)
        store.save_high_score(ctx.uid, topic_name, HighScoreRecord(
            user_id=ctx.uid,
            name=ctx.label,
            score=record.score,
            topic=topic_name,
            completed=record.completed,
        ))
        progress = store.load_progress(ctx.uid)
        own_scores = store.load_high_scores(ctx.uid)
        profile = store.load_profile(ctx.uid)
        streak_value = profile.streak if profile else 0
        login_days = len(profile.login_days) if profile else 0
        result = _refresh_achievements(ctx, progress, streak_value, login_days)
    except StoreError as e:
        logger.exception("Saving %s progress failed for %s", topic_name, ctx.uid)
        outcome.update(_error(e, "Failed to save quiz progress. Please try again."))
        outcome["saved"] = False
        return

    outcome.update({
        "ok": True,
        "saved": True,
        "total_score": sum(s.score for s in own_scores),
        "achievements_unlocked": result["unlocked"],
        "notices": result["notices"],
    })

def _make_session(ctx: UserContext, topic, record: Optional[ProgressRecord]) -> QuizSession:
    def on_complete(score: int, time_str: str, results: List[AnswerResult]):
        _persist(ctx, topic.name, ProgressRecord(
            completed=topic.question_count,
            time=time_str,
            elapsed=session.elapsed,
            score=score,
            answer_results=results,
        ), session.last_save)

    def on_quit(elapsed: int, score: int, completed: int, results: List[AnswerResult]):
        _persist(ctx, topic.name, ProgressRecord(
            completed=completed,
            time=None,
            elapsed=elapsed,
            score=score,
            answer_results=results,
        ), session.last_save)

    def on_retry():
        _persist(ctx, topic.name, ProgressRecord(), session.last_save)

    kwargs = {}
    if _ticker_factory is not None:
        kwargs["ticker_factory"] = _ticker_factory
    record = record or ProgressRecord()
    session = QuizSession(
        topic,
        initial_progress=record.completed,
        initial_elapsed=record.elapsed,
        initial_score=record.score,
        initial_results=record.answer_results,
        on_complete=on_complete,
        on_quit=on_quit,
        on_retry=on_retry,
        **kwargs,
    )
    return session

def _register(ctx: UserContext, topic, record: Optional[ProgressRecord]) -> QuizSession:
    session = _make_session(ctx, topic, record)
    _registry.put(ctx.uid, session)
    return session

def _persistence_fields(session: QuizSession) -> Dict[str, Any]:
    """Outcome of the store writes triggered by the last transition, in response shape."""
    outcome = dict(session.last_save)
    session.last_save.clear()
    if not outcome:
        return {}
    if outcome.get("ok"):
        return {
            "saved": True,
            "total_score": outcome.get("total_score", 0),
            "achievements_unlocked": outcome.get("achievements_unlocked", []),
            "notices": list(outcome.get("notices", [])),
        }
    # the in-memory session already moved on; only the save failed
    return {"saved": False, "error": outcome.get("error"), "notices": [outcome["notice"]]}

# ============================================================================
# Quiz flow
# ============================================================================

def start_quiz(ctx: UserContext, topic_name: str) -> Dict[str, Any]:
    topic = get_topic(topic_name)
    if topic is None:
        return {"ok": False, "error": f"Unknown topic: {topic_name}",
                "notice": notices.error("Unknown Topic", f"There is no topic called {topic_name}.")}

    live = _active(ctx)
    if live is not None and live.topic.name == topic.name and live.state in (ANSWERING, LOCKED):
        return {"ok": True, "resumed": True, "session": live.state_dict()}

    try:
        progress = store.load_progress(ctx.uid)
    except StoreError as e:
        logger.exception("Loading progress failed for %s", ctx.uid)
        return _error(e, "Failed to load user progress. Please try again later.")

    record = progress.get(topic.name)
    if record is not None and record.completed >= topic.question_count:
        return {
            "ok": False,
            "needs_retry": True,
            "error": "Topic already completed",
            "notice": notices.notice(
                "Retry Topic?",
                f"You've completed {topic.display_name}. Retrying will reset your progress for this topic.",
                notices.QUESTION,
            ),
        }

    session = _register(ctx, topic, record)
    return {"ok": True, "resumed": bool(record and record.completed), "session": session.state_dict()}

def _active(ctx: UserContext) -> Optional[QuizSession]:
    return _registry.get(ctx.uid)

def _no_session() -> Dict[str, Any]:
    return {"ok": False, "error": "No active quiz. Pick a topic first.",
            "notice": notices.warning("No Active Quiz", "Pick a topic to start a quiz.")}

def answer(ctx: UserContext, option: str) -> Dict[str, Any]:
    session = _active(ctx)
    if session is None:
        return _no_session()
    feedback = session.submit(option)
    if feedback is None:
        return {"ok": False, "error": "Answer already submitted for this question.",
                "session": session.state_dict()}
    return {"ok": True, **feedback, "session": session.state_dict()}

def acknowledge(ctx: UserContext) -> Dict[str, Any]:
    session = _active(ctx)
    if session is None:
        return _no_session()
    completed = session.acknowledge()
    result: Dict[str, Any] = {"ok": True, "quiz_complete": completed, "session": session.state_dict()}
    if completed:
        result["result"] = session.result_summary()
        result.update(_persistence_fields(session))
    return result

def quit_quiz(ctx: UserContext) -> Dict[str, Any]:
    session = _active(ctx)
    if session is None:
        return _no_session()
    if not session.quit():
        return {"ok": False, "error": "This quiz is already finished.", "session": session.state_dict()}
    persisted = _persistence_fields(session)
    state = session.state_dict()
    _registry.drop(ctx.uid, session)
    result = {"ok": True, "session": state}
    result.update(persisted)
    if persisted.get("saved"):
        result.setdefault("notices", []).insert(0, notices.info("Progress Saved", "Your progress will be waiting for you."))
    return result

def retry_topic(ctx: UserContext, topic_name: str) -> Dict[str, Any]:
    """
    Start the topic over. Uses the live completed session when there is one,
    otherwise a fresh session; either way the stored record is overwritten.
    """
    topic = get_topic(topic_name)
    if topic is None:
        return {"ok": False, "error": f"Unknown topic: {topic_name}",
                "notice": notices.error("Unknown Topic", f"There is no topic called {topic_name}.")}

    session = _active(ctx)
    if session is not None and session.topic.name == topic.name and session.retry():
        result = {"ok": True, "session": session.state_dict()}
        result.update(_persistence_fields(session))
        return result

    session = _register(ctx, topic, None)
    _persist(ctx, topic.name, ProgressRecord(), session.last_save)
    result = {"ok": True, "session": session.state_dict()}
    result.update(_persistence_fields(session))
    return result

def quiz_state(ctx: UserContext) -> Dict[str, Any]:
    session = _active(ctx)
    if session is None:
        return {"ok": True, "has_active_quiz": False}
    return {"ok": True, "has_active_quiz": True, "session": session.state_dict()}

def quiz_result(ctx: UserContext) -> Dict[str, Any]:
    session = _active(ctx)
    if session is None:
        return _no_session()
    return {"ok": True, "result": session.result_summary()}

def reset_progress(ctx: UserContext) -> Dict[str, Any]:
    """Reset-all. Achievements survive; see store.reset_all."""
    session = _active(ctx)
    if session is not None:
        _registry.drop(ctx.uid, session)
    try:
        store.reset_all(ctx.uid, ctx.label)
    except StoreError as e:
        logger.exception("Reset failed for %s", ctx.uid)
        return _error(e)
    return {"ok": True, "notice": notices.success("Progress Reset", "All topics have been reset.")}

# ============================================================================
# Leaderboard & achievements
# ============================================================================

def get_leaderboard(ctx: UserContext) -> Dict[str, Any]:
    try:
        rows = board.load_leaderboard()
    except StoreError as e:
        logger.exception("Leaderboard failed")
        return _error(e)

    for row in rows:
        if row["user_id"] == ctx.uid and ctx.label:
            row["name"] = ctx.label
        row["is_you"] = row["user_id"] == ctx.uid
    return {"ok": True, "leaderboard": rows, "count": len(rows), "you": board.find_row(rows, ctx.uid)}

def get_achievements(ctx: UserContext) -> Dict[str, Any]:
    try:
        state = store.load_achievements(ctx.uid)
        profile = store.load_profile(ctx.uid)
    except StoreError as e:
        logger.exception("Loading achievements failed for %s", ctx.uid)
        return _error(e)
    return {
        "ok": True,
        "achievements": achievements.describe(state),
        "completed_count": state.completed_count,
        "total": achievements.CATALOG_SIZE,
        "login_days": len(profile.login_days) if profile else 0,
        "streak": profile.streak if profile else 0,
    }
