# services/quiz_service/profile.py
"""Display name / bio for the profile screen."""

from __future__ import annotations
import logging
from typing import Dict, Any

from firebase_admin import auth as fb_auth
from firebase_admin.exceptions import FirebaseError

from . import notices, store
from .errors import StoreError

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME = 50
MAX_BIO = 500


def get_profile(ctx) -> Dict[str, Any]:
    try:
        profile = store.load_profile(ctx.uid)
    except StoreError as e:
        logger.exception("Loading profile failed for %s", ctx.uid)
        return {"ok": False, "error": e.message, "notice": notices.from_exception(e)}

    return {
        "ok": True,
        "display_name": (profile.display_name if profile else "") or ctx.display_name or "",
        "email": ctx.email,
        "bio": profile.bio if profile else "",
        "streak": profile.streak if profile else 0,
        "login_days": len(profile.login_days) if profile else 0,
    }


def update_profile(ctx, display_name: str, bio: str) -> Dict[str, Any]:
    """
    Auth display name first, then profiles/{uid}, then the user's high-score
    documents so the leaderboard picks up the new name.
    """
    display_name = (display_name or "").strip()
    bio = (bio or "").strip()
    if not display_name:
        return {"ok": False, "error": "Display name is required",
                "notice": notices.warning("Missing Name", "Please enter a display name.")}
    if len(display_name) > MAX_DISPLAY_NAME or len(bio) > MAX_BIO:
        return {"ok": False, "error": "Display name or bio too long",
                "notice": notices.warning("Too Long",
                                          f"Names are limited to {MAX_DISPLAY_NAME} characters and bios to {MAX_BIO}.")}

    try:
        fb_auth.update_user(ctx.uid, display_name=display_name)
        store.save_profile_fields(ctx.uid, displayName=display_name, bio=bio)
        store.rename_high_scores(ctx.uid, display_name)
    except FirebaseError as e:
        logger.exception("Auth profile update failed for %s", ctx.uid)
        return {"ok": False, "error": str(e),
                "notice": notices.error("Error", f"Failed to update profile: {e}")}
    except StoreError as e:
        logger.exception("Profile save failed for %s", ctx.uid)
        return {"ok": False, "error": e.message,
                "notice": notices.error("Error", f"Failed to update profile: {e.message}")}

    logger.info("Profile updated for %s", ctx.uid)
    return {
        "ok": True,
        "display_name": display_name,
        "bio": bio,
        "notice": notices.success("Success!", "Your profile has been updated."),
    }
