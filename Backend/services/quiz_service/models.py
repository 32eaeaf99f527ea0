# services/quiz_service/models.py
"""
Typed records for everything the quiz service reads from or writes to Firestore.

Firestore hands back plain dicts whose shape is whatever the last writer chose.
Every record here decodes through `from_dict`, which validates each field and
falls back to a default (logging a warning) instead of trusting the payload.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .errors import ValidationError

logger = logging.getLogger(__name__)

# Difficulty thresholds -> points
EASY_MAX_DIFFICULTY = 10
MEDIUM_MAX_DIFFICULTY = 20
EASY_POINTS = 10
MEDIUM_POINTS = 20
HARD_POINTS = 30


def points_for_difficulty(difficulty: int) -> int:
    if difficulty <= EASY_MAX_DIFFICULTY:
        return EASY_POINTS
    if difficulty <= MEDIUM_MAX_DIFFICULTY:
        return MEDIUM_POINTS
    return HARD_POINTS


def tier_label(difficulty: int) -> str:
    if difficulty <= EASY_MAX_DIFFICULTY:
        return "Easy"
    if difficulty <= MEDIUM_MAX_DIFFICULTY:
        return "Medium"
    return "Hard"


# ============================================================================
# Field validation
# ============================================================================

def _int_field(data: Dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number", field=key)
    return int(value)


def _str_field(data: Dict[str, Any], key: str, default: Optional[str] = "") -> Optional[str]:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", field=key)
    return value


def _bool_field(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean", field=key)
    return value


def _decode_or_default(cls, raw, label: str):
    """Decode one record; a malformed one degrades to the class defaults."""
    if not isinstance(raw, dict):
        logger.warning("Malformed %s (not a mapping): %r", label, raw)
        return cls()
    try:
        return cls.from_dict(raw)
    except ValidationError as e:
        logger.warning("Malformed %s, field %s: %s", label, e.field, e.message)
        return cls()


# ============================================================================
# Static question bank records
# ============================================================================

@dataclass(frozen=True)
class Question:
    question: str
    options: Tuple[str, ...]
    correct: str
    difficulty: int

    @property
    def points(self) -> int:
        return points_for_difficulty(self.difficulty)

    @property
    def tier(self) -> str:
        return tier_label(self.difficulty)

    def public_dict(self, number: int) -> Dict[str, Any]:
        """What the client sees while answering (no correct option)."""
        return {
            "number": number,
            "question": self.question,
            "options": list(self.options),
            "difficulty": self.tier,
            "points": self.points,
        }


@dataclass(frozen=True)
class Topic:
    name: str
    questions: Tuple[Question, ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def max_score(self) -> int:
        return sum(q.points for q in self.questions)

    @property
    def display_name(self) -> str:
        return " ".join(w.capitalize() for w in self.name.replace("_", " ").split(" "))


# ============================================================================
# Per-user records
# ============================================================================

@dataclass
class AnswerResult:
    question: str = ""
    user_answer: str = ""
    correct_answer: str = ""
    is_correct: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnswerResult":
        return cls(
            question=_str_field(data, "question"),
            user_answer=_str_field(data, "userAnswer"),
            correct_answer=_str_field(data, "correctAnswer"),
            is_correct=_bool_field(data, "isCorrect"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
        }


@dataclass
class ProgressRecord:
    completed: int = 0
    time: Optional[str] = None
    elapsed: int = 0
    score: int = 0
    answer_results: List[AnswerResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressRecord":
        raw_results = data.get("answerResults") or []
        if not isinstance(raw_results, list):
            raise ValidationError("answerResults must be a list", field="answerResults")
        return cls(
            completed=max(0, _int_field(data, "completed")),
            time=_str_field(data, "time", None),
            elapsed=max(0, _int_field(data, "elapsed")),
            score=max(0, _int_field(data, "score")),
            answer_results=[_decode_or_default(AnswerResult, r, "answer result") for r in raw_results],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": self.completed,
            "time": self.time,
            "elapsed": self.elapsed,
            "score": self.score,
            "answerResults": [r.to_dict() for r in self.answer_results],
        }


def decode_progress_map(raw: Optional[Dict[str, Any]]) -> Dict[str, ProgressRecord]:
    """users/{uid} document -> {topic: ProgressRecord}."""
    if not raw:
        return {}
    return {
        str(topic): _decode_or_default(ProgressRecord, record, f"progress record '{topic}'")
        for topic, record in raw.items()
    }


def encode_progress_map(progress: Dict[str, ProgressRecord]) -> Dict[str, Any]:
    return {topic: record.to_dict() for topic, record in progress.items()}


@dataclass
class HighScoreRecord:
    user_id: str = ""
    name: str = ""
    score: int = 0
    topic: str = ""
    completed: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: str = "") -> "HighScoreRecord":
        user_id = _str_field(data, "userId") or ""
        topic = _str_field(data, "topic") or ""
        if not user_id and doc_id and topic and doc_id.endswith(f"_{topic}"):
            # older documents only carry the owner in their id: {uid}_{topic}
            user_id = doc_id[: -(len(topic) + 1)]
        return cls(
            user_id=user_id,
            name=_str_field(data, "name") or "",
            score=max(0, _int_field(data, "score")),
            topic=topic,
            completed=max(0, _int_field(data, "completed")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "name": self.name,
            "score": self.score,
            "topic": self.topic,
            "completed": self.completed,
        }


def total_scores_by_user(scores: List[HighScoreRecord]) -> Dict[str, int]:
    """Sum of scores per user id, keyed in first-encounter order."""
    totals: Dict[str, int] = {}
    for s in scores:
        totals[s.user_id] = totals.get(s.user_id, 0) + s.score
    return totals


def decode_high_score(raw, doc_id: str = "") -> HighScoreRecord:
    if not isinstance(raw, dict):
        logger.warning("Malformed high score %s (not a mapping)", doc_id)
        return HighScoreRecord()
    try:
        return HighScoreRecord.from_dict(raw, doc_id)
    except ValidationError as e:
        logger.warning("Malformed high score %s, field %s: %s", doc_id, e.field, e.message)
        return HighScoreRecord()


@dataclass
class StreakProfile:
    last_login: Optional[str] = None
    streak: int = 0
    login_days: List[str] = field(default_factory=list)
    display_name: str = ""
    bio: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreakProfile":
        days = data.get("loginDays") or []
        if not isinstance(days, list):
            raise ValidationError("loginDays must be a list", field="loginDays")
        return cls(
            last_login=_str_field(data, "lastLogin", None) or None,
            streak=max(0, _int_field(data, "streak")),
            login_days=sorted({d for d in days if isinstance(d, str)}),
            display_name=_str_field(data, "displayName") or "",
            bio=_str_field(data, "bio") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastLogin": self.last_login,
            "streak": self.streak,
            "loginDays": list(self.login_days),
            "displayName": self.display_name,
            "bio": self.bio,
        }


def decode_profile(raw: Optional[Dict[str, Any]]) -> Optional[StreakProfile]:
    """None when the user has no profile yet (first-ever login)."""
    if raw is None:
        return None
    return _decode_or_default(StreakProfile, raw, "profile")


@dataclass
class AchievementState:
    """name -> completed / popup shown. Both flags only ever go False -> True."""
    completed: Dict[str, bool] = field(default_factory=dict)
    shown: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AchievementState":
        completed = data.get("completed") or {}
        shown = data.get("shown") or {}
        if not isinstance(completed, dict):
            raise ValidationError("completed must be a map", field="completed")
        if not isinstance(shown, dict):
            raise ValidationError("shown must be a map", field="shown")
        return cls(
            completed={str(k): v is True for k, v in completed.items()},
            shown={str(k): v is True for k, v in shown.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"completed": dict(self.completed), "shown": dict(self.shown)}

    def is_completed(self, name: str) -> bool:
        return self.completed.get(name, False)

    def is_shown(self, name: str) -> bool:
        return self.shown.get(name, False)

    @property
    def completed_count(self) -> int:
        return sum(1 for v in self.completed.values() if v)


def decode_achievements(raw: Optional[Dict[str, Any]]) -> AchievementState:
    if raw is None:
        return AchievementState()
    return _decode_or_default(AchievementState, raw, "achievement state")
