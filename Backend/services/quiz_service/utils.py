"""
Shared helpers for the quiz service: Firestore client, calendar days, and time strings.
Keeps the game modules small and testable.
"""

import os
import json
import logging
import firebase_admin
from firebase_admin import credentials, firestore
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import Config

logger = logging.getLogger(__name__)


def _resolve_cred():
    """Service account credentials, or None to fall back to application default credentials."""
    try:
        cred_path = Config._resolve_firebase_cred_path()
    except FileNotFoundError as e:
        # On Cloud Run, default credentials (attached service account) will work
        logger.info("No service account file (%s), using default credentials", str(e).splitlines()[0])
        return None
    if cred_path is None:
        return credentials.Certificate(json.loads(os.environ["FIREBASE_SERVICE_ACCOUNT_JSON"]))
    return credentials.Certificate(cred_path)


def init_firebase():
    """Initialize Firebase Admin once per process."""
    if firebase_admin._apps:
        return
    cred = _resolve_cred()
    if cred is not None:
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized from service account credentials")
    else:
        firebase_admin.initialize_app()
        logger.info("Firebase initialized with default credentials")


def get_db():
    """Return a Firestore client, initializing Firebase if needed."""
    init_firebase()
    return firestore.client()


# ============================================================================
# Calendar days
# ============================================================================

def today_in(tz_name: str = "UTC") -> date:
    """Current calendar day in the given IANA timezone (falls back to UTC)."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using UTC", tz_name)
        tz = timezone.utc
    return datetime.now(tz).date()


def parse_iso_day(value) -> Optional[date]:
    """'2025-03-14' -> date(2025, 3, 14); anything unparsable -> None."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def to_yyyy_mm_dd(day: date) -> str:
    """Standardize date strings for storage and UI consistency."""
    return day.strftime("%Y-%m-%d")


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


# Client calendars may run a day ahead of or behind UTC, never more
CLIENT_DAY_TOLERANCE = timedelta(days=1)


def client_login_day(value, reference: Optional[date] = None) -> Optional[date]:
    """
    The client's calendar day when it parses and lies within a day of server
    UTC (`reference`, default today in UTC). Anything else -> None.
    """
    day = parse_iso_day(value)
    if day is None:
        return None
    reference = reference or today_in("UTC")
    if abs(day - reference) > CLIENT_DAY_TOLERANCE:
        logger.warning("Rejected client day %s (server UTC day %s)", day, reference)
        return None
    return day


# ============================================================================
# Elapsed time
# ============================================================================

def format_elapsed(seconds: int) -> str:
    """125 -> '02:05'"""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def parse_time_to_seconds(value: Optional[str]) -> Optional[int]:
    """'02:05' -> 125; None or malformed -> None."""
    if not value or not isinstance(value, str) or ":" not in value:
        return None
    minutes, _, seconds = value.partition(":")
    try:
        return int(minutes) * 60 + int(seconds)
    except ValueError:
        return None
