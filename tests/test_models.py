"""Question bank shape and record decoding."""

from datetime import date

import pytest

from services.quiz_service import notices
from services.quiz_service.models import HighScoreRecord, StreakProfile, Topic, Question, points_for_difficulty
from services.quiz_service.question_bank import TOPICS, get_topic, resources_for, topic_names
from services.quiz_service.utils import client_login_day, format_elapsed, parse_iso_day, parse_time_to_seconds


@pytest.mark.parametrize("difficulty,points", [(1, 10), (10, 10), (11, 20), (20, 20), (21, 30), (30, 30)])
def test_points_for_difficulty(difficulty, points):
    assert points_for_difficulty(difficulty) == points


def test_bank_has_nine_unique_topics():
    names = topic_names()
    assert len(names) == 9
    assert len(set(names)) == 9
    for topic in TOPICS:
        assert topic.question_count > 0
        for q in topic.questions:
            assert q.correct in q.options
        assert resources_for(topic.name)


def test_display_name_and_max_score():
    topic = Topic("data_structures", (Question("q", ("a",), "a", 5), Question("q", ("a",), "a", 25)))
    assert topic.display_name == "Data Structures"
    assert topic.max_score == 40
    assert get_topic("nope") is None


def test_high_score_to_dict_uses_stored_keys():
    record = HighScoreRecord("u1", "Alice", 60, "loops", 3)
    assert HighScoreRecord.from_dict(record.to_dict()) == record


def test_profile_login_days_are_distinct_and_sorted():
    profile = StreakProfile.from_dict({"loginDays": ["2025-01-02", "2025-01-01", "2025-01-02", 7]})
    assert profile.login_days == ["2025-01-01", "2025-01-02"]


def test_time_helpers():
    assert format_elapsed(125) == "02:05"
    assert parse_time_to_seconds("02:05") == 125
    assert parse_time_to_seconds(None) is None
    assert parse_time_to_seconds("soon") is None
    assert parse_iso_day("2025-03-14").day == 14
    assert parse_iso_day("yesterday") is None


def test_notice_rejects_unknown_icon():
    assert notices.warning("t", "x") == {"title": "t", "text": "x", "icon": "warning"}
    with pytest.raises(ValueError):
        notices.notice("t", "x", "sparkles")


def test_client_login_day_window():
    server = date(2025, 3, 14)
    assert client_login_day("2025-03-13", server) == date(2025, 3, 13)
    assert client_login_day("2025-03-15", server) == date(2025, 3, 15)
    assert client_login_day("2025-03-16", server) is None
    assert client_login_day("2025-03-12", server) is None
    assert client_login_day("someday", server) is None
    assert client_login_day(None, server) is None
