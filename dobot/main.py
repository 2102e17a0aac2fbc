"""Flask application setup and blueprint wiring."""

from __future__ import annotations

import logging
import os

from flask import Flask
from flask_cors import CORS

from dobot import database
from dobot.routes import register_routes
from dobot.utils.auth import register_store_cleanup

MAX_UPDATE_BYTES = 1 * 1024 * 1024  # Telegram updates are small JSON documents


def create_app() -> Flask:
    """Configure and return the Flask application instance."""
    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.config["MAX_CONTENT_LENGTH"] = MAX_UPDATE_BYTES

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=log_level)
    app.logger.setLevel(log_level)

    register_store_cleanup(app)
    register_routes(app)

    # Initialize MongoDB indexes if enabled
    if database.mongo_enabled():
        try:
            from dobot.services import store_service
            with app.app_context():
                store_service.create_indexes()
                app.logger.info("MongoDB indexes created successfully")
        except Exception as e:
            app.logger.warning(f"Failed to create MongoDB indexes: {e}")

    return app
