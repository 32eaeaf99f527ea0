# services/quiz_service/session.py
"""
In-memory quiz session: walks one topic's questions, scores answers, and hands
the result to callbacks when the user completes, quits, or retries.

States:
    answering(i) --submit--> locked(i) --acknowledge--> answering(i+1) | completed
    any (but completed) --quit--> quit
    completed --retry--> answering(0)

A ticker adds one elapsed second per second until the session completes.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Dict, Any, List, Optional

from . import notices
from .models import AnswerResult, Topic
from .question_bank import resources_for
from .utils import format_elapsed

logger = logging.getLogger(__name__)

ANSWERING = "answering"
LOCKED = "locked"
COMPLETED = "completed"
QUIT = "quit"

TICK_SECONDS = 1.0

CompleteCallback = Callable[[int, str, List[AnswerResult]], None]
QuitCallback = Callable[[int, int, int, List[AnswerResult]], None]
RetryCallback = Callable[[], None]


# ============================================================================
# Ticker
# ============================================================================

class ElapsedTicker:
    """Calls `on_tick` every `interval` seconds on a daemon timer thread until stopped."""

    def __init__(self, on_tick: Callable[[], None], interval: float = TICK_SECONDS):
        self._on_tick = on_tick
        self._interval = interval
        self._timer: Optional[threading.Timer] = None
        self._stopped = False
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            if not self._stopped and self._timer is None:
                self._schedule()

    def _schedule(self):
        self._timer = threading.Timer(self._interval, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self):
        with self._lock:
            if self._stopped:
                return
        self._on_tick()
        with self._lock:
            if not self._stopped:
                self._schedule()

    def stop(self):
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def stopped(self) -> bool:
        return self._stopped


TickerFactory = Callable[[Callable[[], None]], Any]


# ============================================================================
# Session
# ============================================================================

class QuizSession:
    def __init__(
        self,
        topic: Topic,
        *,
        initial_progress: int = 0,
        initial_elapsed: int = 0,
        initial_score: int = 0,
        initial_results: Optional[List[AnswerResult]] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_quit: Optional[QuitCallback] = None,
        on_retry: Optional[RetryCallback] = None,
        ticker_factory: TickerFactory = ElapsedTicker,
    ):
        if topic.question_count == 0:
            raise ValueError(f"Topic {topic.name} has no questions")

        self.topic = topic
        self.index = min(max(0, initial_progress), topic.question_count - 1)
        self.elapsed = max(0, initial_elapsed)
        self.answer_results: List[AnswerResult] = list(initial_results or [])[: self.index]
        self.correct_count = sum(1 for r in self.answer_results if r.is_correct)
        self.score = self._resumed_score(max(0, initial_score))
        self.state = ANSWERING

        self.on_complete = on_complete
        self.on_quit = on_quit
        self.on_retry = on_retry
        # filled by whoever owns the callbacks (e.g. result of the last save)
        self.last_save: Dict[str, Any] = {}

        self._ticker_factory = ticker_factory
        self._lock = threading.RLock()
        self._ticker = ticker_factory(self.tick)
        self._ticker.start()

    def _resumed_score(self, stored_score: int) -> int:
        """
        Score for the questions before `index`. Rebuilt from the kept answer
        results when there is one per question; otherwise the stored score,
        capped at what those questions could have earned.
        """
        answered = self.topic.questions[: self.index]
        if len(self.answer_results) == len(answered):
            return sum(q.points for q, r in zip(answered, self.answer_results) if r.is_correct)
        return min(stored_score, sum(q.points for q in answered))

    # ---- clock ---------------------------------------------------------------

    def tick(self):
        with self._lock:
            if self.state in (COMPLETED, QUIT):
                return
            self.elapsed += 1

    def _stop_ticker(self):
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None

    # ---- transitions ---------------------------------------------------------

    @property
    def input_locked(self) -> bool:
        return self.state != ANSWERING

    @property
    def answered_count(self) -> int:
        return self.index + (1 if self.state in (LOCKED, COMPLETED) else 0)

    def current_question(self):
        return self.topic.questions[self.index]

    def submit(self, option: str) -> Optional[Dict[str, Any]]:
        """Grade `option` for the current question. Returns None (no-op) while input is locked."""
        with self._lock:
            if self.input_locked:
                return None

            question = self.current_question()
            is_correct = option == question.correct
            points = question.points if is_correct else 0
            if is_correct:
                self.score += points
                self.correct_count += 1

            self.answer_results.append(AnswerResult(
                question=question.question,
                user_answer=option,
                correct_answer=question.correct,
                is_correct=is_correct,
            ))
            self.state = LOCKED

        if is_correct:
            feedback = notices.success("Correct!", f"You earned {points} points!")
        else:
            feedback = notices.error("Incorrect", f"The correct answer was: {question.correct}")
        return {
            "is_correct": is_correct,
            "points": points,
            "correct_answer": question.correct,
            "score": self.score,
            "notice": feedback,
        }

    def acknowledge(self) -> bool:
        """Dismiss feedback and move on. Returns True when this completed the topic."""
        with self._lock:
            if self.state != LOCKED:
                return False
            if self.index + 1 < self.topic.question_count:
                self.index += 1
                self.state = ANSWERING
                return False

            self.state = COMPLETED
            self._stop_ticker()
            score, time_str, results = self.score, self.time_string, list(self.answer_results)

        logger.info("Quiz completed: topic=%s score=%d time=%s", self.topic.name, score, time_str)
        if self.on_complete is not None:
            self.on_complete(score, time_str, results)
        return True

    def quit(self) -> bool:
        with self._lock:
            if self.state in (COMPLETED, QUIT):
                return False
            # a locked answer is already scored, so it counts as completed
            elapsed, score, completed, results = self.elapsed, self.score, self.answered_count, list(self.answer_results)
            self.state = QUIT
            self._stop_ticker()

        logger.info("Quiz quit: topic=%s completed=%d score=%d", self.topic.name, completed, score)
        if self.on_quit is not None:
            self.on_quit(elapsed, score, completed, results)
        return True

    def retry(self) -> bool:
        with self._lock:
            if self.state != COMPLETED:
                return False
            self.index = 0
            self.score = 0
            self.elapsed = 0
            self.correct_count = 0
            self.answer_results = []
            self.state = ANSWERING
            self._ticker = self._ticker_factory(self.tick)
            self._ticker.start()

        logger.info("Quiz retried: topic=%s", self.topic.name)
        if self.on_retry is not None:
            self.on_retry()
        return True

    def close(self):
        """Tear down without callbacks (sign-out, replaced by another topic)."""
        with self._lock:
            self._stop_ticker()

    # ---- views ---------------------------------------------------------------

    @property
    def time_string(self) -> str:
        return format_elapsed(self.elapsed)

    def state_dict(self) -> Dict[str, Any]:
        with self._lock:
            data = {
                "topic": self.topic.name,
                "display_name": self.topic.display_name,
                "state": self.state,
                "question_index": self.index,
                "total_questions": self.topic.question_count,
                "score": self.score,
                "correct": self.correct_count,
                "elapsed": self.elapsed,
                "time": self.time_string,
                "input_locked": self.input_locked,
            }
            if self.state in (ANSWERING, LOCKED):
                data["question"] = self.current_question().public_dict(self.index + 1)
            return data

    def result_summary(self) -> Dict[str, Any]:
        with self._lock:
            results = list(self.answer_results)
            return {
                "topic": self.topic.name,
                "display_name": self.topic.display_name,
                "score": self.score,
                "max_score": self.topic.max_score,
                "correct": self.correct_count,
                "total_questions": self.topic.question_count,
                "time": self.time_string,
                "correct_answers": [r.to_dict() for r in results if r.is_correct],
                "incorrect_answers": [r.to_dict() for r in results if not r.is_correct],
                "resources": resources_for(self.topic.name),
            }


# ============================================================================
# Registry: at most one live session per user
# ============================================================================

class SessionRegistry:
    def __init__(self):
        self._sessions: Dict[str, QuizSession] = {}
        self._lock = threading.Lock()

    def get(self, uid: str) -> Optional[QuizSession]:
        with self._lock:
            return self._sessions.get(uid)

    def put(self, uid: str, session: QuizSession):
        with self._lock:
            old = self._sessions.get(uid)
            self._sessions[uid] = session
        if old is not None and old is not session:
            old.close()

    def drop(self, uid: str, session: Optional[QuizSession] = None):
        """Remove the user's session (only if it is still `session`, when given)."""
        with self._lock:
            current = self._sessions.get(uid)
            if current is None or (session is not None and current is not session):
                return
            del self._sessions[uid]
        current.close()

    def __len__(self):
        with self._lock:
            return len(self._sessions)


registry = SessionRegistry()
