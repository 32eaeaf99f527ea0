# services/quiz_service/notices.py
"""
User-facing notices. The client renders each one as a titled, dismissible popup
with an icon, so every response that needs to tell the user something carries:

    {"title": "Achievement Unlocked!", "text": "Century Scorer", "icon": "success"}
"""

from __future__ import annotations
from typing import Dict, Any

SUCCESS = "success"
ERROR = "error"
INFO = "info"
WARNING = "warning"
QUESTION = "question"

ICONS = (SUCCESS, ERROR, INFO, WARNING, QUESTION)


def notice(title: str, text: str = "", icon: str = INFO) -> Dict[str, Any]:
    if icon not in ICONS:
        raise ValueError(f"Unknown notice icon: {icon}")
    return {"title": title, "text": text, "icon": icon}


def success(title: str, text: str = "") -> Dict[str, Any]:
    return notice(title, text, SUCCESS)


def error(title: str, text: str = "") -> Dict[str, Any]:
    return notice(title, text, ERROR)


def info(title: str, text: str = "") -> Dict[str, Any]:
    return notice(title, text, INFO)


def warning(title: str, text: str = "") -> Dict[str, Any]:
    return notice(title, text, WARNING)


def from_exception(exc: Exception, title: str = "Error") -> Dict[str, Any]:
    """Error notice for a caught QuizError (or anything with a `.message`)."""
    text = getattr(exc, "message", None) or "Something went wrong. Please try again."
    return error(title, text)
