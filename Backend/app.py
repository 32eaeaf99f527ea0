# app.py
"""
Main Flask application entrypoint.

- Loads env/config
- Initializes Firebase Admin (token verification + Firestore)
- Enables CORS for /api/*
- Registers blueprints: Auth, Quiz
"""

from __future__ import annotations
import logging
import os
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

# ---- Load .env early ----
load_dotenv()

# ---- Config & blueprints ----
from config import Config
from routes.auth import auth_bp
from services.quiz_service.routes import quiz_bp
from services.quiz_service import utils

logger = logging.getLogger(__name__)


def _configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

# ---------------------------------------------------------------------
# App Factory
# ---------------------------------------------------------------------
def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # require_auth runs before any Firestore calls, so initialize Admin up front
    if not app.config.get("TESTING"):
        utils.init_firebase()

    CORS(app, resources={r"/api/*": {"origins": Config.cors_origins(app.config.get("CORS_ORIGINS"))}})

    # --- Register blueprints ---
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(quiz_bp, url_prefix="/api/quiz")

    # --- Health (public) ---
    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "service": "flask", "version": "1.0.0"})

    # --- JSON error handlers ---
    @app.errorhandler(400)
    def handle_400(err):
        return jsonify({"ok": False, "error": str(err)}), 400

    @app.errorhandler(404)
    def handle_404(err):
        return jsonify({"ok": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_405(err):
        return jsonify({"ok": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_500(err):
        logger.error("Unhandled error: %s", err)
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    return app


# ---------------------------------------------------------------------
# Dev Server Launcher
# ---------------------------------------------------------------------
if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", "5001"))
    app.run(host="0.0.0.0", port=port, debug=True)
