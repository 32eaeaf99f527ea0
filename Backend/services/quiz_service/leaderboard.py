# services/quiz_service/leaderboard.py
"""
Global leaderboard: one row per user, ranked by summed high score.

Reads every user's high scores, progress map and achievement document, so it is
meant for small populations (a few hundred users). Never writes.
"""

from __future__ import annotations
import logging
from typing import Dict, Any, List, Optional

from . import store
from .achievements import CATALOG_SIZE
from .models import AchievementState, HighScoreRecord, ProgressRecord, total_scores_by_user
from .question_bank import TOPICS, total_question_count

logger = logging.getLogger(__name__)

UNRANKED = "N/A"


def build_leaderboard(
    high_scores: List[HighScoreRecord],
    progress_by_user: Dict[str, Dict[str, ProgressRecord]],
    achievements_by_user: Dict[str, AchievementState],
    topics=TOPICS,
    achievement_total: int = CATALOG_SIZE,
) -> List[Dict[str, Any]]:
    """
    Pure aggregation. Rows are sorted by total score, descending and stable
    (ties keep the order users were first seen in `high_scores`).
    A user with a total of 0 is never ranked.
    """
    totals = total_scores_by_user(high_scores)
    names: Dict[str, str] = {}
    completed_from_scores: Dict[str, int] = {}
    for s in high_scores:
        if s.name:
            names.setdefault(s.user_id, s.name)
        completed_from_scores[s.user_id] = completed_from_scores.get(s.user_id, 0) + s.completed

    question_total = total_question_count(topics)
    rows = []
    for uid, total in totals.items():
        progress = progress_by_user.get(uid)
        if progress is not None:
            answered = sum(p.completed for p in progress.values())
        else:
            answered = completed_from_scores.get(uid, 0)
        state = achievements_by_user.get(uid) or AchievementState()
        rows.append({
            "user_id": uid,
            "name": names.get(uid, ""),
            "total_score": total,
            "total_questions": answered,
            "total_possible_questions": question_total,
            "achievements_count": state.completed_count,
            "total_achievements": achievement_total,
        })

    rows.sort(key=lambda r: r["total_score"], reverse=True)
    for position, row in enumerate(rows, start=1):
        row["rank"] = position if row["total_score"] > 0 else UNRANKED
    return rows


def load_leaderboard() -> List[Dict[str, Any]]:
    """Read everything the aggregation needs from Firestore and rank it."""
    high_scores = [s for s in store.load_high_scores() if s.user_id]
    user_ids = list(total_scores_by_user(high_scores))

    progress_by_user = {uid: store.load_progress(uid) for uid in user_ids}
    achievements_by_user = {uid: store.load_achievements(uid) for uid in user_ids}

    rows = build_leaderboard(high_scores, progress_by_user, achievements_by_user)
    logger.info("Leaderboard built: %d users from %d high-score records", len(rows), len(high_scores))
    return rows


def find_row(rows: List[Dict[str, Any]], uid: str) -> Optional[Dict[str, Any]]:
    for row in rows:
        if row["user_id"] == uid:
            return row
    return None
