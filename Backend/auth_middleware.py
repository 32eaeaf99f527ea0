# auth_middleware.py
from functools import wraps
from flask import request, jsonify

from services import identity
from services.quiz_service import notices
from services.quiz_service.errors import AuthError

def require_auth(fn):
    """
    Verify Firebase ID token from 'Authorization: Bearer <token>'.
    Sets request.user = {"uid": ..., "email": ..., "name": ...}
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        hdr = request.headers.get("Authorization", "")
        if not hdr.startswith("Bearer "):
            return jsonify({"ok": False, "error": "Missing Firebase ID token",
                            "notice": notices.warning("Sign In Required", "Please sign in to continue.")}), 401
        try:
            principal = identity.verify_id_token(hdr.split(" ", 1)[1].strip())
        except AuthError as e:
            return jsonify({"ok": False, "error": f"Invalid or expired token: {e.detail or e.message}",
                            "notice": notices.from_exception(e, "Session Expired")}), 401
        request.user = {
            "uid": principal.uid,
            "email": principal.email,
            "name": principal.display_name,
        }
        return fn(*args, **kwargs)
    return wrapper
