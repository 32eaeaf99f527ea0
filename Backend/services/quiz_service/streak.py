# services/quiz_service/streak.py
"""
Consecutive-day login streak.

Rules (calendar days, not 24h windows):
- already logged in today        -> streak unchanged, nothing written
- last login was yesterday       -> streak + 1
- any bigger gap / first login   -> streak back to 1
- a day before the last login    -> ignored, nothing written
Every login day is remembered in `login_days` (distinct ISO dates).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Any, List, Optional

from . import notices, store
from .models import StreakProfile
from .utils import parse_iso_day, previous_day, to_yyyy_mm_dd

logger = logging.getLogger(__name__)

EVENT_UNCHANGED = "unchanged"
EVENT_INCREASED = "increased"
EVENT_STARTED = "started"


@dataclass
class StreakUpdate:
    streak: int
    login_days: List[str]
    last_login: str
    changed: bool
    event: str

    @property
    def login_day_count(self) -> int:
        return len(self.login_days)

    def notice(self) -> Optional[Dict[str, Any]]:
        if self.event == EVENT_INCREASED:
            return notices.success("Streak Increased!", f"Your login streak is now {self.streak} days!")
        if self.event == EVENT_STARTED:
            return notices.success("Streak Started!", "Your login streak is now 1 day!")
        return None


def update_streak(profile: Optional[StreakProfile], today: date) -> StreakUpdate:
    """Pure streak transition for a login on `today`."""
    today_str = to_yyyy_mm_dd(today)

    if profile is None:
        return StreakUpdate(streak=1, login_days=[today_str], last_login=today_str,
                            changed=True, event=EVENT_STARTED)

    days = set(profile.login_days)
    last_login = parse_iso_day(profile.last_login)

    if last_login is not None and today < last_login:
        # a day before the stored last login never moves the streak backwards
        logger.warning("Ignoring login day %s earlier than last login %s", today_str, profile.last_login)
        return StreakUpdate(streak=profile.streak, login_days=sorted(days), last_login=profile.last_login,
                            changed=False, event=EVENT_UNCHANGED)

    if last_login == today:
        # a stored streak of 0 on today's date only happens with hand-edited data
        return StreakUpdate(streak=max(1, profile.streak), login_days=sorted(days | {today_str}),
                            last_login=today_str, changed=False, event=EVENT_UNCHANGED)

    days.add(today_str)
    if last_login is not None and last_login == previous_day(today):
        return StreakUpdate(streak=profile.streak + 1, login_days=sorted(days), last_login=today_str,
                            changed=True, event=EVENT_INCREASED)

    return StreakUpdate(streak=1, login_days=sorted(days), last_login=today_str,
                        changed=True, event=EVENT_STARTED)


def record_login(uid: str, display_name: str, today: date) -> StreakUpdate:
    """
    Run once per authenticated session start: load profiles/{uid}, apply the
    transition, and merge the streak fields back only when something changed.
    Display name and bio are left alone unless the profile has no name yet.
    """
    profile = store.load_profile(uid)
    update = update_streak(profile, today)

    if update.changed:
        fields: Dict[str, Any] = {
            "lastLogin": update.last_login,
            "streak": update.streak,
            "loginDays": update.login_days,
        }
        if profile is None or not profile.display_name:
            fields["displayName"] = display_name
        if profile is None:
            fields["bio"] = ""
        store.save_profile_fields(uid, **fields)
        logger.info("Login streak for %s %s: %d (%d login days)",
                    uid, update.event, update.streak, update.login_day_count)
    return update
