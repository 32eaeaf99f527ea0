# services/quiz_service/achievements.py
"""
Achievement catalog and evaluator.

Twelve achievements in three families plus three one-offs:
- Topics completed:  First Step (1), Triple Threat (3), Master Coder (all 9)
- Total score:       Century Scorer (100), Half Millennium (500), Code Legend (1000)
- Login streak:      Double Duty (2), Five Alive (5), Decade Devotion (10)
- Quick Learner (topic finished in under 5:00), Perfectionist (a topic at max score),
  Top Coder (#1 on the global leaderboard)

State lives in one document per user (profiles/{uid}/achievements/progress).
Completed and shown flags only ever go False -> True.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Any, List

from . import notices, store
from .models import AchievementState, HighScoreRecord, ProgressRecord, Topic, total_scores_by_user
from .question_bank import TOPICS
from .utils import parse_time_to_seconds

logger = logging.getLogger(__name__)

QUICK_LEARNER_SECONDS = 5 * 60


@dataclass
class AchievementInputs:
    user_id: str
    progress: Dict[str, ProgressRecord]
    scores: List[HighScoreRecord]  # every user's records, not just this user's
    streak: int
    login_days: int
    topics: tuple = field(default=TOPICS)


@dataclass(frozen=True)
class AchievementDef:
    name: str
    description: str
    check: Callable[[AchievementInputs], bool]


# ============================================================================
# Aggregates
# ============================================================================

def _finished_topics(inputs: AchievementInputs) -> List[Topic]:
    finished = []
    for topic in inputs.topics:
        record = inputs.progress.get(topic.name)
        if record is not None and topic.question_count > 0 and record.completed >= topic.question_count:
            finished.append(topic)
    return finished


def completed_topic_count(inputs: AchievementInputs) -> int:
    return len(_finished_topics(inputs))


def own_total_score(inputs: AchievementInputs) -> int:
    return sum(s.score for s in inputs.scores if s.user_id == inputs.user_id)


def _has_quick_finish(inputs: AchievementInputs) -> bool:
    for topic in _finished_topics(inputs):
        seconds = parse_time_to_seconds(inputs.progress[topic.name].time)
        if seconds is not None and seconds < QUICK_LEARNER_SECONDS:
            return True
    return False


def _has_perfect_topic(inputs: AchievementInputs) -> bool:
    return any(inputs.progress[t.name].score >= t.max_score for t in _finished_topics(inputs))


def _is_top_of_leaderboard(inputs: AchievementInputs) -> bool:
    totals = total_scores_by_user(inputs.scores)
    if not totals:
        return False
    # stable sort: ties keep encounter order, same as the leaderboard
    leader, leader_total = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[0]
    return leader == inputs.user_id and leader_total > 0


# ============================================================================
# Catalog (order = notification order when several unlock at once)
# ============================================================================

CATALOG: List[AchievementDef] = [
    AchievementDef("First Step", "Complete 1 topic",
                   lambda i: completed_topic_count(i) >= 1),
    AchievementDef("Triple Threat", "Complete 3 topics",
                   lambda i: completed_topic_count(i) >= 3),
    AchievementDef("Master Coder", "Complete all 9 topics",
                   lambda i: completed_topic_count(i) >= len(i.topics)),
    AchievementDef("Century Scorer", "Reach a total score of 100",
                   lambda i: own_total_score(i) >= 100),
    AchievementDef("Half Millennium", "Reach a total score of 500",
                   lambda i: own_total_score(i) >= 500),
    AchievementDef("Code Legend", "Reach a total score of 1000",
                   lambda i: own_total_score(i) >= 1000),
    AchievementDef("Double Duty", "Achieve a 2-day login streak",
                   lambda i: i.streak >= 2),
    AchievementDef("Five Alive", "Achieve a 5-day login streak",
                   lambda i: i.streak >= 5),
    AchievementDef("Decade Devotion", "Achieve a 10-day login streak",
                   lambda i: i.streak >= 10),
    AchievementDef("Quick Learner", "Complete a topic in under 5 minutes", _has_quick_finish),
    AchievementDef("Perfectionist", "Complete a topic with a perfect score", _has_perfect_topic),
    AchievementDef("Top Coder", "Reach #1 on the leaderboard", _is_top_of_leaderboard),
]

CATALOG_SIZE = len(CATALOG)


# ============================================================================
# Evaluation
# ============================================================================

def evaluate(state: AchievementState, inputs: AchievementInputs) -> List[str]:
    """
    Mark newly satisfied achievements on `state` (in place) and return the names
    whose unlock popup should be shown now. Idempotent for unchanged inputs.
    """
    unlocked = []
    for achievement in CATALOG:
        if state.is_completed(achievement.name):
            continue
        if not achievement.check(inputs):
            continue
        state.completed[achievement.name] = True
        if not state.is_shown(achievement.name):
            state.shown[achievement.name] = True
            unlocked.append(achievement.name)
    return unlocked


def unlock_notices(names: List[str]) -> List[Dict[str, Any]]:
    return [notices.success("Achievement Unlocked!", name) for name in names]


def evaluate_and_save(inputs: AchievementInputs) -> Dict[str, Any]:
    """Load the user's state, evaluate, and write the whole document once if anything changed."""
    state = store.load_achievements(inputs.user_id)
    before = state.to_dict()
    unlocked = evaluate(state, inputs)

    if state.to_dict() != before:
        store.save_achievements(inputs.user_id, state)
    for name in unlocked:
        logger.info("Achievement unlocked for %s: %s", inputs.user_id, name)

    return {
        "state": state,
        "unlocked": unlocked,
        "notices": unlock_notices(unlocked),
    }


def describe(state: AchievementState) -> List[Dict[str, Any]]:
    """Catalog with completion flags, for the achievements screen."""
    return [
        {
            "name": a.name,
            "description": a.description,
            "completed": state.is_completed(a.name),
        }
        for a in CATALOG
    ]
