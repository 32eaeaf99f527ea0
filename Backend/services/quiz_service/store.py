# services/quiz_service/store.py
"""
Firestore persistence for the quiz service.

Document layout:
- users/{uid}                               progress map {topic: ProgressRecord}
- highScores/{uid}_{topic}                  one HighScoreRecord per user+topic
- profiles/{uid}                            streak, login days, display name, bio
- profiles/{uid}/achievements/progress      consolidated AchievementState

No cache and no merge logic: every call goes to Firestore and the last writer wins.
Any Firestore failure surfaces as StoreError.
"""

from __future__ import annotations
import logging
from typing import Dict, Any, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from . import utils
from .errors import StoreError
from .models import (
    AchievementState,
    HighScoreRecord,
    ProgressRecord,
    StreakProfile,
    decode_achievements,
    decode_high_score,
    decode_profile,
    decode_progress_map,
    encode_progress_map,
)
from .question_bank import TOPICS

logger = logging.getLogger(__name__)

USERS = "users"
HIGH_SCORES = "highScores"
PROFILES = "profiles"
ACHIEVEMENTS_DOC = "achievements/progress"

# ============================================================================
# Document store adapter
# ============================================================================

def _split(path: str) -> List[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise ValueError("Empty Firestore path")
    return parts


def _doc_ref(path: str):
    parts = _split(path)
    if len(parts) % 2:
        raise ValueError(f"Not a document path: {path}")
    ref = utils.get_db().collection(parts[0]).document(parts[1])
    for i in range(2, len(parts), 2):
        ref = ref.collection(parts[i]).document(parts[i + 1])
    return ref


def _collection_ref(path: str):
    parts = _split(path)
    if len(parts) % 2 == 0:
        raise ValueError(f"Not a collection path: {path}")
    ref = utils.get_db().collection(parts[0])
    for i in range(1, len(parts), 2):
        ref = ref.document(parts[i]).collection(parts[i + 1])
    return ref


def get_document(path: str) -> Optional[Dict[str, Any]]:
    """Fields of the document at `path`, or None when it does not exist."""
    try:
        snap = _doc_ref(path).get()
    except GoogleAPIError as e:
        logger.error("Firestore read failed for %s: %s", path, e)
        raise StoreError("Failed to load your data. Please try again later.", path=path, detail=str(e)) from e
    if not snap.exists:
        return None
    return snap.to_dict() or {}


def set_document(path: str, fields: Dict[str, Any], merge: bool = False) -> None:
    try:
        _doc_ref(path).set(fields, merge=merge)
    except GoogleAPIError as e:
        logger.error("Firestore write failed for %s: %s", path, e)
        raise StoreError("Failed to save your data. Please try again.", path=path, detail=str(e)) from e


def get_collection(path: str) -> List[Tuple[str, Dict[str, Any]]]:
    """All documents directly under `path`, as (id, fields), in store order."""
    try:
        return [(d.id, d.to_dict() or {}) for d in _collection_ref(path).stream()]
    except GoogleAPIError as e:
        logger.error("Firestore scan failed for %s: %s", path, e)
        raise StoreError("Failed to load shared data. Please try again later.", path=path, detail=str(e)) from e


# ============================================================================
# Paths
# ============================================================================

def progress_path(uid: str) -> str:
    return f"{USERS}/{uid}"


def high_score_path(uid: str, topic: str) -> str:
    return f"{HIGH_SCORES}/{uid}_{topic}"


def profile_path(uid: str) -> str:
    return f"{PROFILES}/{uid}"


def achievements_path(uid: str) -> str:
    return f"{PROFILES}/{uid}/{ACHIEVEMENTS_DOC}"


# ============================================================================
# Progress
# ============================================================================

def load_progress(uid: str) -> Dict[str, ProgressRecord]:
    return decode_progress_map(get_document(progress_path(uid)))


def save_progress(uid: str, progress: Dict[str, ProgressRecord]) -> None:
    """Overwrite the whole progress map (not a merge)."""
    set_document(progress_path(uid), encode_progress_map(progress))


# ============================================================================
# High scores
# ============================================================================

def load_high_scores(uid: Optional[str] = None) -> List[HighScoreRecord]:
    """One user's records (topic order), or every record in the collection when uid is None."""
    if uid is None:
        return [decode_high_score(data, doc_id) for doc_id, data in get_collection(HIGH_SCORES)]

    scores = []
    for topic in TOPICS:
        data = get_document(high_score_path(uid, topic.name))
        if data is not None:
            record = decode_high_score(data, f"{uid}_{topic.name}")
            record.user_id = uid
            scores.append(record)
    return scores


def save_high_score(uid: str, topic: str, record: HighScoreRecord) -> None:
    payload = record.to_dict()
    payload["userId"] = uid
    payload["topic"] = topic
    set_document(high_score_path(uid, topic), payload)


def rename_high_scores(uid: str, name: str) -> None:
    """Point every existing high-score document of `uid` at a new display name."""
    for topic in TOPICS:
        path = high_score_path(uid, topic.name)
        if get_document(path) is not None:
            set_document(path, {"name": name}, merge=True)


# ============================================================================
# Reset
# ============================================================================

def reset_all(uid: str, name: str) -> None:
    """
    Clear the progress map and zero every topic's high score.

    Writes go out one by one with no atomicity. A failure on one topic does not
    stop the others, and nothing is rolled back. Achievement state is untouched.
    """
    save_progress(uid, {})

    failed = []
    for topic in TOPICS:
        try:
            save_high_score(uid, topic.name, HighScoreRecord(user_id=uid, name=name, score=0, topic=topic.name))
        except StoreError:
            failed.append(topic.name)

    if failed:
        logger.warning("reset_all for %s left %d topic(s) un-reset: %s", uid, len(failed), failed)
        raise StoreError(
            f"Progress was only partly reset. These topics could not be reset: {', '.join(failed)}",
            path=HIGH_SCORES,
        )
    logger.info("reset_all complete for %s", uid)


# ============================================================================
# Profile & achievements
# ============================================================================

def load_profile(uid: str) -> Optional[StreakProfile]:
    return decode_profile(get_document(profile_path(uid)))


def save_profile_fields(uid: str, **fields) -> None:
    payload = dict(fields)
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    set_document(profile_path(uid), payload, merge=True)


def load_achievements(uid: str) -> AchievementState:
    return decode_achievements(get_document(achievements_path(uid)))


def save_achievements(uid: str, state: AchievementState) -> None:
    payload = state.to_dict()
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    set_document(achievements_path(uid), payload)
