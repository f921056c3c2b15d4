# portal_messaging/api/middlewares/error_handler.py
import logging

from flask import Flask, g, jsonify, request
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from portal_messaging.config.settings import settings
from portal_messaging.core.exceptions import AppError, ValidationError

logger = logging.getLogger(__name__)


def _actor() -> str:
    identity = getattr(g, "identity", None)
    return f"user_id={identity.user_id}" if identity is not None else "anonyme"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            logger.error("%s: %s (%s %s %s)", err.code, err, _actor(), request.method, request.path)
        else:
            logger.warning("%s: %s (%s %s %s)", err.code, err, _actor(), request.method, request.path)
        return jsonify({"error": str(err), "code": err.code}), err.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_validation_error(err: PydanticValidationError):
        logger.warning("validation_error: %s (%s %s %s)", err.error_count(), _actor(), request.method, request.path)
        payload = {"error": ValidationError().args[0], "code": ValidationError.code}
        if settings.debug:
            payload["details"] = err.errors(include_url=False, include_context=False)
        return jsonify(payload), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return jsonify({"error": err.description, "code": err.name.lower().replace(" ", "_")}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        logger.exception("Erro inesperado")

        if settings.debug:
            return jsonify({"error": str(err), "code": "internal_error"}), 500

        return jsonify({"error": "Erreur interne du serveur.", "code": "internal_error"}), 500
