from flask import Flask

from portal_messaging.config.settings import settings


def configure_app(app: Flask) -> None:
    app.config["ENV"] = settings.environment
    app.config["DEBUG"] = settings.debug
    app.config["JSON_SORT_KEYS"] = False
