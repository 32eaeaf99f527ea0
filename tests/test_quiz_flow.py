"""Sign-in, quiz completion/quit/retry persistence chains, reset and leaderboard."""

from datetime import date

import pytest

from services.quiz_service import quiz_flow
from services.quiz_service.models import Question, Topic
from services.quiz_service.question_bank import get_topic

ALICE = quiz_flow.UserContext(uid="alice", display_name="Alice", email="alice@example.com")


@pytest.fixture
def small_loops(monkeypatch):
    """'loops' with three questions of difficulty 5, 15 and 25."""
    topic = Topic("loops", (
        Question("Q1", ("a", "b"), "a", 5),
        Question("Q2", ("a", "b"), "b", 15),
        Question("Q3", ("a", "b"), "a", 25),
    ))
    monkeypatch.setattr(quiz_flow, "get_topic", lambda name: topic if name == "loops" else get_topic(name))
    return topic


def _play(ctx, options):
    last = None
    for option in options:
        quiz_flow.answer(ctx, option)
        last = quiz_flow.acknowledge(ctx)
    return last


def test_start_user_session_records_login(db, registry):
    result = quiz_flow.start_user_session(ALICE, date(2025, 3, 1))

    assert result["ok"] is True
    assert result["streak"] == 1
    assert result["login_days"] == 1
    assert result["notices"][0]["title"] == "Streak Started!"
    assert db.docs["profiles/alice"]["displayName"] == "Alice"


def test_second_day_unlocks_double_duty(db, registry):
    quiz_flow.start_user_session(ALICE, date(2025, 3, 1))
    result = quiz_flow.start_user_session(ALICE, date(2025, 3, 2))

    assert result["streak"] == 2
    assert result["achievements_unlocked"] == ["Double Duty"]
    titles = [n["title"] for n in result["notices"]]
    assert titles == ["Streak Increased!", "Achievement Unlocked!"]


def test_start_user_session_store_failure(db, registry):
    db.fail("get", "users/alice")
    result = quiz_flow.start_user_session(ALICE, date(2025, 3, 1))
    assert result["ok"] is False
    assert result["notice"]["icon"] == "error"


def test_completion_persists_progress_and_high_score(db, registry, small_loops):
    started = quiz_flow.start_quiz(ALICE, "loops")
    assert started["ok"] is True

    done = _play(ALICE, ["a", "b", "a"])

    assert done["quiz_complete"] is True
    assert done["saved"] is True
    assert done["result"]["score"] == 60
    assert db.docs["users/alice"]["loops"]["completed"] == 3
    assert db.docs["users/alice"]["loops"]["score"] == 60
    assert db.docs["users/alice"]["loops"]["time"] == "00:00"
    assert db.docs["highScores/alice_loops"]["score"] == 60
    assert db.docs["highScores/alice_loops"]["name"] == "Alice"
    assert done["total_score"] == 60
    assert "Top Coder" in done["achievements_unlocked"]


def test_completion_write_order(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    _play(ALICE, ["a", "a", "a"])
    assert db.writes[:3] == [
        "users/alice",
        "highScores/alice_loops",
        "profiles/alice/achievements/progress",
    ]


def test_save_failure_keeps_session_completed(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    db.fail("set", "highScores/alice_loops")

    done = _play(ALICE, ["a", "b", "a"])

    assert done["quiz_complete"] is True
    assert done["saved"] is False
    assert done["notices"][0]["icon"] == "error"
    assert registry.get("alice").state == "completed"


def test_quit_saves_partial_progress_and_drops_session(db, registry, small_loops, tickers):
    quiz_flow.start_quiz(ALICE, "loops")
    quiz_flow.answer(ALICE, "a")
    quiz_flow.acknowledge(ALICE)
    tickers.last.advance(12)

    result = quiz_flow.quit_quiz(ALICE)

    assert result["ok"] is True
    assert result["notices"][0]["title"] == "Progress Saved"
    record = db.docs["users/alice"]["loops"]
    assert (record["completed"], record["score"], record["elapsed"], record["time"]) == (1, 10, 12, None)
    assert registry.get("alice") is None


def test_resume_after_quit(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    quiz_flow.answer(ALICE, "a")
    quiz_flow.acknowledge(ALICE)
    quiz_flow.quit_quiz(ALICE)

    resumed = quiz_flow.start_quiz(ALICE, "loops")
    assert resumed["resumed"] is True
    assert resumed["session"]["question_index"] == 1
    assert resumed["session"]["score"] == 10


def test_completed_topic_asks_for_retry(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    _play(ALICE, ["a", "b", "a"])
    registry.drop("alice")

    result = quiz_flow.start_quiz(ALICE, "loops")
    assert result["needs_retry"] is True
    assert result["notice"]["icon"] == "question"


def test_retry_resets_stored_record(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    _play(ALICE, ["a", "b", "a"])

    result = quiz_flow.retry_topic(ALICE, "loops")

    assert result["ok"] is True
    assert result["session"]["score"] == 0
    assert db.docs["users/alice"]["loops"]["completed"] == 0
    assert db.docs["highScores/alice_loops"]["score"] == 0


def test_retry_without_live_session(db, registry, small_loops):
    db.put("users/alice", {"loops": {"completed": 3, "score": 60, "time": "01:00"}})
    result = quiz_flow.retry_topic(ALICE, "loops")
    assert result["saved"] is True
    assert registry.get("alice").state == "answering"
    assert db.docs["users/alice"]["loops"]["score"] == 0


def test_unknown_topic(db, registry):
    result = quiz_flow.start_quiz(ALICE, "cobol")
    assert result["ok"] is False
    assert result["notice"]["title"] == "Unknown Topic"


def test_answer_without_session(db, registry):
    assert quiz_flow.answer(ALICE, "a")["ok"] is False


def test_list_topics_reports_percentages(db, registry):
    db.put("users/alice", {"loops": {"completed": 2, "score": 20}})
    result = quiz_flow.list_topics(ALICE)
    loops = next(t for t in result["topics"] if t["name"] == "loops")
    assert loops["completed"] == 2
    assert loops["percentage"] == round(2 / get_topic("loops").question_count * 100, 1)
    assert loops["is_completed"] is False


def test_reset_progress_keeps_achievements(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    _play(ALICE, ["a", "b", "a"])
    before = db.docs["profiles/alice/achievements/progress"]["completed"]

    result = quiz_flow.reset_progress(ALICE)

    assert result["ok"] is True
    assert db.docs["users/alice"] == {}
    assert db.docs["highScores/alice_loops"]["score"] == 0
    assert db.docs["profiles/alice/achievements/progress"]["completed"] == before
    assert registry.get("alice") is None


def test_leaderboard_marks_caller(db, registry):
    db.put("highScores/bob_loops", {"userId": "bob", "name": "Bob", "score": 30, "topic": "loops"})
    db.put("highScores/alice_loops", {"userId": "alice", "name": "old", "score": 50, "topic": "loops"})

    result = quiz_flow.get_leaderboard(ALICE)

    assert [r["user_id"] for r in result["leaderboard"]] == ["alice", "bob"]
    assert result["you"]["rank"] == 1
    assert result["you"]["name"] == "Alice"
    assert result["leaderboard"][1]["is_you"] is False


def test_sign_out_notification_closes_session(db, registry, tickers):
    quiz_flow.start_quiz(ALICE, "variables")
    quiz_flow.on_auth_state_changed("alice", None)
    assert registry.get("alice") is None
    assert tickers.last.stops == 1


def test_quit_on_unacknowledged_last_answer_cannot_double_score(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    for option in ("a", "b"):
        quiz_flow.answer(ALICE, option)
        quiz_flow.acknowledge(ALICE)
    quiz_flow.answer(ALICE, "a")
    quiz_flow.quit_quiz(ALICE)

    record = db.docs["users/alice"]["loops"]
    assert (record["completed"], record["score"], len(record["answerResults"])) == (3, 60, 3)
    assert db.docs["highScores/alice_loops"]["score"] == small_loops.max_score

    again = quiz_flow.start_quiz(ALICE, "loops")
    assert again["needs_retry"] is True


def test_quit_on_unacknowledged_answer_resumes_at_next_question(db, registry, small_loops):
    quiz_flow.start_quiz(ALICE, "loops")
    quiz_flow.answer(ALICE, "a")
    quiz_flow.acknowledge(ALICE)
    quiz_flow.answer(ALICE, "b")
    quiz_flow.quit_quiz(ALICE)

    resumed = quiz_flow.start_quiz(ALICE, "loops")
    assert resumed["session"]["question_index"] == 2
    assert resumed["session"]["score"] == 30

    done = _play(ALICE, ["a"])
    assert done["result"]["score"] == small_loops.max_score
    assert db.docs["highScores/alice_loops"]["score"] == small_loops.max_score
