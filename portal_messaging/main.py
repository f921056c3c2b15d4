# portal_messaging/main.py
from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from portal_messaging.api.middlewares.error_handler import register_error_handlers
from portal_messaging.api.routes import register_routes
from portal_messaging.config.flask_config import configure_app
from portal_messaging.config.logging_config import configure_logging
from portal_messaging.config.settings import settings

import portal_messaging.infrastructure.database.models  # noqa: F401


# -------------------------
# Prefixos (subpath)
# -------------------------
APP_PREFIX = settings.app_prefix.rstrip("/")
API_PREFIX = f"{APP_PREFIX}/api"


def create_app() -> Flask:
    configure_logging()

    app = Flask(__name__)

    # CORS aplicado cedo (antes das rotas lidarem com OPTIONS)
    CORS(
        app,
        resources={rf"{API_PREFIX}/*": {"origins": settings.cors_origins}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    configure_app(app)

    register_routes(app, api_prefix=API_PREFIX, app_prefix=APP_PREFIX)

    register_error_handlers(app)

    return app


if __name__ == "__main__":
    # em produção: gunicorn "portal_messaging.main:create_app()"
    create_app().run(host="0.0.0.0", port=5000, debug=settings.debug)
